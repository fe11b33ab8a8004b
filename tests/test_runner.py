import logging
import sys

import pytest

from pkgforge.runner import BuildFailed, ConsoleFormatter, run_process_with_replacements


def _messages(caplog):
    return [r.getMessage() for r in caplog.records if r.name == "pkgforge.runner"]


def test_replaces_prefixes_in_output(tmp_path, caplog):
    caplog.set_level(logging.INFO, logger="pkgforge.runner")
    run_process_with_replacements(
        sys.executable,
        tmp_path,
        ["-c", "print('/opt/host/bin/tool'); print('/opt/build/lib')"],
        [("/opt/host", "$PREFIX"), ("/opt/build", "$BUILD_PREFIX")],
    )
    assert _messages(caplog) == ["$PREFIX/bin/tool", "$BUILD_PREFIX/lib"]


def test_replacements_apply_in_order(tmp_path, caplog):
    caplog.set_level(logging.INFO, logger="pkgforge.runner")
    run_process_with_replacements(
        sys.executable, tmp_path, ["-c", "print('a')"], [("a", "b"), ("b", "c")]
    )
    assert _messages(caplog) == ["c"]


def test_runs_in_working_directory(tmp_path, caplog):
    caplog.set_level(logging.INFO, logger="pkgforge.runner")
    work = tmp_path.resolve()
    run_process_with_replacements(
        sys.executable,
        work,
        ["-c", "import os; print(os.path.realpath(os.getcwd()))"],
        [(str(work), "$SRC_DIR")],
    )
    assert _messages(caplog) == ["$SRC_DIR"]


def test_failure_raises(tmp_path):
    with pytest.raises(BuildFailed) as excinfo:
        run_process_with_replacements(
            sys.executable, tmp_path, ["-c", "import sys; sys.exit(3)"], []
        )
    assert excinfo.value.returncode == 3
    assert str(excinfo.value) == "Build failed"


def test_undecodable_line_is_skipped(tmp_path, caplog):
    caplog.set_level(logging.INFO, logger="pkgforge.runner")
    script = "import sys; sys.stdout.buffer.write(b'\\xff\\xfe\\n'); print('ok')"
    run_process_with_replacements(sys.executable, tmp_path, ["-c", script], [])
    records = [r for r in caplog.records if r.name == "pkgforge.runner"]
    assert [r.getMessage() for r in records if r.levelno == logging.INFO] == ["ok"]
    assert any(r.levelno == logging.WARNING for r in records)


def _record(name, level, msg, args=()):
    return logging.LogRecord(name, level, __file__, 1, msg, args, None)


def test_formatter_plain_for_own_info():
    formatter = ConsoleFormatter()
    assert formatter.format(_record("pkgforge.build", logging.INFO, "hello %s", ("x",))) == "hello x"


def test_formatter_full_for_other_loggers():
    formatter = ConsoleFormatter()
    text = formatter.format(_record("other", logging.INFO, "hello"))
    assert text != "hello"
    assert text.endswith("other: hello")
    assert "INFO" in text


def test_formatter_full_for_own_warnings():
    formatter = ConsoleFormatter()
    text = formatter.format(_record("pkgforge.index", logging.WARNING, "careful"))
    assert "WARNING" in text
    assert text.endswith("pkgforge.index: careful")


def test_formatter_does_not_match_similar_names():
    formatter = ConsoleFormatter()
    text = formatter.format(_record("pkgforgery", logging.INFO, "hi"))
    assert text.endswith("pkgforgery: hi")
"""测试 levelog.core.logger.Logger 的完整日志流程。"""

import io
import json
from unittest.mock import MagicMock

import pytest

from levelog import LifecycleState, Logger, LogLevel


def make_logger(lines, **options):
    options.setdefault("colorize", False)
    return Logger(console=lines.append, **options)


def read_lines(path):
    return path.read_text(encoding="utf-8").splitlines()


class TestLevelFiltering:
    """测试级别过滤对控制台与文件的影响。"""

    def test_min_level_warn_scenario(self, console_lines):
        """测试 minLevel=WARN 且无文件时只输出 warn/error，且顺序与调用一致。"""
        log = make_logger(console_lines, min_level="WARN", mode="normal")

        log.info("info")
        log.debug("debug")
        log.warn("careful")
        log.error("broken")

        assert console_lines == ["[WARN]: careful", "[ERROR]: broken"]

    def test_filtered_calls_produce_no_file_line(self, console_lines, tmp_path):
        path = tmp_path / "app.log"
        log = make_logger(console_lines, min_level="ERROR", log_file=path)

        log.info("nope")
        log.success("nope")

        assert console_lines == []
        assert path.read_text() == ""

    def test_silent_mode(self, console_lines, tmp_path):
        path = tmp_path / "app.log"
        log = make_logger(console_lines, mode="silent", log_file=path)

        for level in LogLevel:
            if level is not LogLevel.FATAL:
                log.log(level, "x")

        assert console_lines == []
        assert path.read_text() == ""

    def test_trace_in_verbose_mode(self, console_lines):
        log = make_logger(console_lines, mode="verbose")
        log.trace("deep")
        assert console_lines == ["[TRACE]: deep"]

    def test_unknown_level_is_dropped(self, console_lines, diagnostics_messages):
        log = make_logger(console_lines)

        log.log("LOUD", "x")

        assert console_lines == []
        assert any("unknown log level" in r["message"] for r in diagnostics_messages)

    def test_set_level_and_is_level_enabled(self, console_lines):
        log = make_logger(console_lines)
        assert log.is_level_enabled("debug")

        log.set_level("ERROR")

        assert not log.is_level_enabled(LogLevel.WARN)
        assert log.is_level_enabled("error")
        assert not log.is_level_enabled("LOUD")


class TestOutput:
    """测试控制台与文件的逐条输出。"""

    def test_one_console_and_one_file_line_per_call(self, console_lines, tmp_path):
        path = tmp_path / "app.log"
        log = make_logger(console_lines, log_file=path)

        for i in range(5):
            log.info(f"message {i}")

        assert console_lines == [f"[INFO]: message {i}" for i in range(5)]
        lines = read_lines(path)
        assert len(lines) == 5
        assert [line.split(": ", 1)[1] for line in lines] == [f"message {i}" for i in range(5)]
        assert lines[0].startswith("[") and "] [INFO]: " in lines[0]

    def test_mixed_arguments_and_metadata(self, console_lines, tmp_path):
        """测试可变参数拼接以及关键字参数作为 metadata 写入 JSON。"""
        path = tmp_path / "app.log"
        log = make_logger(console_lines, log_file=path, log_format="json", pretty_print=False)

        log.info("user", {"id": 1}, 3, request_id="abc")

        assert console_lines == ['[INFO]: user {"id":1} 3']
        record = json.loads(path.read_text())
        assert record["message"] == 'user {"id":1} 3'
        assert record["metadata"] == {"request_id": "abc"}
        assert record["level"] == "INFO"
        assert isinstance(record["pid"], int)
        assert record["hostname"]
        assert record["environment"] == "development"

    def test_circular_argument_does_not_raise(self, console_lines):
        log = make_logger(console_lines, pretty_print=False)
        data: dict = {"a": 1}
        data["me"] = data

        log.warn("state", data)

        assert console_lines == ['[WARN]: state {"a":1,"me":"[Circular]"}']

    def test_json_and_assert_helpers(self, console_lines):
        log = make_logger(console_lines, pretty_print=False)

        log.json({"k": [1, 2]})
        log.json({"k": 1}, level="ERROR")
        log.assert_(True, "fine")
        log.assert_(1 > 2, "math is broken")

        assert console_lines == [
            '[INFO]: {"k":[1,2]}',
            '[ERROR]: {"k":1}',
            "[ERROR]: Assertion failed: math is broken",
        ]

    def test_custom_formatter(self, console_lines, tmp_path):
        path = tmp_path / "app.log"
        log = make_logger(console_lines, log_file=path)
        log.set_formatter(lambda e: f"{e.level.value.lower()} {e.message}")

        log.info("hi")

        assert console_lines == ["info hi"]
        assert path.read_text() == "info hi\n"

    def test_write_to_stream(self, console_lines):
        stream = io.StringIO()
        log = make_logger(console_lines)

        log.write_to_stream("raw", stream)

        assert stream.getvalue() == "raw\n"
        assert console_lines == []

    def test_write_to_stream_silent(self, console_lines):
        stream = io.StringIO()
        make_logger(console_lines, mode="silent").write_to_stream("raw", stream)
        assert stream.getvalue() == ""

    def test_default_console_is_print(self, capsys):
        Logger(colorize=False).info("to stdout")
        assert capsys.readouterr().out == "[INFO]: to stdout\n"

    def test_buffered_file_keeps_call_order(self, console_lines, tmp_path, fake_scheduler):
        """测试缓冲写入下文件行顺序与调用顺序一致。"""
        path = tmp_path / "app.log"
        log = Logger(
            console=console_lines.append,
            scheduler=fake_scheduler,
            log_file=path,
            buffered=True,
            buffer_size=3,
        )

        for i in range(7):
            log.info(f"m{i}")
        assert len(read_lines(path)) == 6

        log.flush()

        assert [line.rsplit(" ", 1)[1] for line in read_lines(path)] == [f"m{i}" for i in range(7)]

    def test_rotation_scenario(self, console_lines, tmp_path):
        """测试 maxFileSize=100 时第三条 40 字节日志触发轮转。"""
        path = tmp_path / "app.log"
        log = make_logger(console_lines, log_file=path, max_file_size=100)
        log.set_formatter(lambda e: e.message)

        for i in range(3):
            log.info(str(i) * 39)

        archived = [p for p in tmp_path.iterdir() if p.name != "app.log"]
        assert len(archived) == 1
        assert archived[0].read_text() == "0" * 39 + "\n" + "1" * 39 + "\n"
        assert path.read_text() == "2" * 39 + "\n"

    def test_max_files_retention(self, console_lines, tmp_path):
        path = tmp_path / "app.log"
        log = make_logger(console_lines, log_file=path, max_files=2)

        for i in range(5):
            log.info(f"batch {i}")
            assert log.rotate_log_file() is True

        archived = [p for p in tmp_path.iterdir() if p.name != "app.log"]
        assert len(archived) == 2
        assert sorted(p.read_text().split(": ")[-1] for p in archived) == ["batch 3\n", "batch 4\n"]


class TestFileErrors:
    """测试文件 I/O 失败时控制台不受影响。"""

    def test_unwritable_directory(self, console_lines, tmp_path, diagnostics_messages):
        blocker = tmp_path / "file.txt"
        blocker.write_text("not a directory")

        log = make_logger(console_lines, log_file=blocker / "app.log")
        log.info("still printed")

        assert console_lines == ["[INFO]: still printed"]
        messages = [r["message"] for r in diagnostics_messages]
        assert any("create directory failed" in m for m in messages)
        assert any("append failed" in m for m in messages)

    def test_console_failure_is_reported(self, diagnostics_messages):
        def broken_console(line):
            raise ValueError("I/O operation on closed file")

        Logger(console=broken_console).info("x")

        assert any("console output failed" in r["message"] for r in diagnostics_messages)

    def test_surrogate_escaped_text(self, console_lines, tmp_path):
        """测试 surrogateescape 解码的文件名不会让日志调用抛出异常。"""
        path = tmp_path / "app.log"
        name = b"bad\xffname".decode("utf-8", "surrogateescape")
        log = make_logger(console_lines, log_file=path)

        log.info("listing", name)

        assert console_lines == [f"[INFO]: listing {name}"]
        assert read_lines(path)[0].endswith("listing bad\\udcffname")

    def test_surrogate_escaped_text_buffered(self, console_lines, tmp_path, fake_scheduler):
        path = tmp_path / "app.log"
        name = b"\xfe.txt".decode("utf-8", "surrogateescape")
        log = Logger(
            console=console_lines.append,
            scheduler=fake_scheduler,
            log_file=path,
            buffered=True,
            log_format="json",
        )

        log.warn("skipped", file=name)
        log.flush()

        record = json.loads(path.read_text(encoding="utf-8"))
        assert "\\udcfe.txt" in path.read_text(encoding="utf-8")
        assert record["metadata"] == {"file": name}


class TestChild:
    """测试子 logger 的命名空间与配置快照。"""

    def test_nested_namespace(self, console_lines):
        log = make_logger(console_lines)

        grandchild = log.child("x").child("y")
        grandchild.info("hi")

        assert grandchild.namespace == "x:y"
        assert console_lines == ["[INFO]: [x:y] hi"]

    def test_parent_set_config_does_not_affect_child(self, console_lines):
        """测试创建子 logger 后父 logger 的 set_config 不影响子 logger。"""
        parent = make_logger(console_lines, min_level="DEBUG")
        child = parent.child("worker")

        parent.set_config(min_level="ERROR", max_files=1)
        child.debug("still visible")

        assert child.get_config().min_level is LogLevel.DEBUG
        assert child.get_config().max_files == 5
        assert console_lines == ["[DEBUG]: [worker] still visible"]

    def test_child_snapshots_current_config(self, console_lines):
        parent = make_logger(console_lines)
        parent.set_level("WARN")

        assert parent.child("c").get_config().min_level is LogLevel.WARN

    def test_custom_formatter_not_inherited(self, console_lines):
        parent = make_logger(console_lines)
        parent.set_formatter(lambda e: "custom")

        parent.child("c").info("plain")

        assert console_lines == ["[INFO]: [c] plain"]


class TestSetConfig:
    """测试 set_config 的校验与文件通道重建。"""

    def test_invalid_values_keep_prior(self, console_lines):
        log = make_logger(console_lines, max_file_size=500)

        config = log.set_config({"max_file_size": 0, "max_files": -2, "min_level": "LOUD"})

        assert config.max_file_size == 500
        assert config.max_files == 5
        assert config.min_level is LogLevel.DEBUG

    def test_log_file_change_reopens(self, console_lines, tmp_path):
        first = tmp_path / "first.log"
        second = tmp_path / "logs" / "second.log"
        log = make_logger(console_lines, log_file=first)

        log.info("one")
        log.set_config(log_file=second)
        log.info("two")

        assert [line.endswith("one") for line in read_lines(first)] == [True]
        assert [line.endswith("two") for line in read_lines(second)] == [True]

    def test_buffered_lines_flushed_on_reopen(self, console_lines, tmp_path, fake_scheduler):
        first = tmp_path / "first.log"
        log = Logger(console=console_lines.append, scheduler=fake_scheduler, log_file=first, buffered=True)

        log.info("queued")
        log.set_config(log_file=tmp_path / "second.log")

        assert read_lines(first)[0].endswith("queued")

    def test_disable_file_logging(self, console_lines, tmp_path):
        path = tmp_path / "app.log"
        log = make_logger(console_lines, log_file=path)

        log.set_config(disable_file_logging=True)
        log.info("console only")

        assert path.read_text() == ""
        assert console_lines == ["[INFO]: console only"]


class TestLifecycle:
    """测试 flush/close/fatal 与生命周期状态。"""

    def test_states(self, console_lines):
        log = make_logger(console_lines)
        assert log.state is LifecycleState.ACTIVE

        assert log.close() is True
        assert log.state is LifecycleState.CLOSED
        assert log.close() is True

    def test_calls_after_close_are_dropped(self, console_lines, tmp_path):
        path = tmp_path / "app.log"
        log = make_logger(console_lines, log_file=path)
        log.info("before")
        log.close()

        log.info("after")

        assert console_lines == ["[INFO]: before"]
        assert len(read_lines(path)) == 1

    def test_set_config_after_close_opens_nothing(self, console_lines, tmp_path):
        """测试关闭后修改 log_file 只更新配置，不会打开新的文件。"""
        log = make_logger(console_lines, log_file=tmp_path / "app.log")
        log.close()
        late = tmp_path / "late.log"

        config = log.set_config(log_file=late)

        assert config.log_file == str(late)
        assert log.get_config() is config
        assert not late.exists()
        assert log.flush() is True
        assert log.rotate_log_file() is False

    def test_close_flushes_buffer(self, console_lines, tmp_path, fake_scheduler):
        path = tmp_path / "app.log"
        log = Logger(console=console_lines.append, scheduler=fake_scheduler, log_file=path, buffered=True)

        log.info("pending")
        assert path.read_text() == ""

        log.close()
        assert read_lines(path)[0].endswith("pending")

    def test_context_manager_closes(self, console_lines):
        with make_logger(console_lines) as log:
            log.info("inside")
        assert log.state is LifecycleState.CLOSED

    def test_flush_without_file(self, console_lines):
        assert make_logger(console_lines).flush() is True

    def test_fatal_flushes_then_exits(self, console_lines, tmp_path, fake_scheduler):
        """测试 fatal 先把缓冲写入文件再调用退出钩子。"""
        path = tmp_path / "app.log"
        seen_on_exit = []
        exit_hook = MagicMock(side_effect=lambda code: seen_on_exit.append(path.read_text()))
        log = Logger(
            console=console_lines.append,
            exit_hook=exit_hook,
            scheduler=fake_scheduler,
            log_file=path,
            buffered=True,
            colorize=False,
        )

        log.fatal("boom")

        exit_hook.assert_called_once_with(1)
        assert console_lines == ["[FATAL]: boom"]
        assert "[FATAL]: boom" in seen_on_exit[0]

    def test_fatal_default_hook_raises_system_exit(self, console_lines):
        with pytest.raises(SystemExit) as excinfo:
            make_logger(console_lines).fatal("bye")
        assert excinfo.value.code == 1


class TestFileOperations:
    """测试文件辅助操作。"""

    def test_get_log_file_size(self, console_lines, tmp_path):
        path = tmp_path / "app.log"
        log = make_logger(console_lines, log_file=path)
        assert log.get_log_file_size() == 0

        log.info("abc")

        assert log.get_log_file_size() == path.stat().st_size > 0

    def test_get_log_file_size_without_file(self, console_lines):
        assert make_logger(console_lines).get_log_file_size() == 0

    def test_clear_log_file(self, console_lines, tmp_path):
        path = tmp_path / "app.log"
        log = make_logger(console_lines, log_file=path)
        log.info("old")

        log.clear_log_file()

        lines = read_lines(path)
        assert len(lines) == 1
        assert lines[0].endswith("Log file cleared")

    def test_rotate_without_file(self, console_lines):
        assert make_logger(console_lines).rotate_log_file() is False

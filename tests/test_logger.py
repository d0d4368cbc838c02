import io

from loguru import logger

from packsync.logger import resolve_level, setup_logger


def test_resolve_level(monkeypatch):
    monkeypatch.delenv("PACKSYNC_DEBUG", raising=False)
    assert resolve_level() == "INFO"
    assert resolve_level("warning") == "WARNING"

    monkeypatch.setenv("PACKSYNC_DEBUG", "1")
    assert resolve_level() == "DEBUG"
    assert resolve_level("error") == "ERROR"


def test_log_file_keeps_debug_records(tmp_path):
    console = io.StringIO()
    log_file = tmp_path / "logs" / "packsync.log"

    setup_logger(level="INFO", log_file=str(log_file), sink=console, colorize=False)
    logger.debug("[暂存] detail only for the file")
    logger.info("[同步] visible everywhere")
    # 移除处理器会等待队列中的记录写完
    logger.remove()

    written = log_file.read_text(encoding="utf-8")
    assert "detail only for the file" in written
    assert "visible everywhere" in written
    assert "visible everywhere" in console.getvalue()
    assert "detail only for the file" not in console.getvalue()

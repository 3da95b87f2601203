import logging
from logging.handlers import RotatingFileHandler

CONSOLE_HANDLER = "conservebot.console"
FILE_HANDLER = "conservebot.file"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def configure_logging(log_path: str = "conservebot.log", level: int = logging.INFO) -> None:
    """Attach console and rotating-file handlers to the root logger once per process."""
    root = logging.getLogger()
    root.setLevel(level)

    installed = {h.get_name() for h in root.handlers}
    if CONSOLE_HANDLER in installed and FILE_HANDLER in installed:
        return

    fmt = logging.Formatter(LOG_FORMAT)

    if CONSOLE_HANDLER not in installed:
        console = logging.StreamHandler()
        console.set_name(CONSOLE_HANDLER)
        console.setFormatter(fmt)
        root.addHandler(console)

    if FILE_HANDLER not in installed:
        # every remediation is logged, keep the file bounded
        journal = RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=5)
        journal.set_name(FILE_HANDLER)
        journal.setFormatter(fmt)
        root.addHandler(journal)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

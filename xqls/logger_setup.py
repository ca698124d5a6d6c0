"""
Logging for the XQuery Language Server.

Everything logs to the ``xqls`` logger. Records go to stderr, since stdout
carries the LSP stream, and to the client's output channel through
``window/logMessage``.
"""

import logging
from typing import Optional, Union

from lsprotocol.types import LogMessageParams, MessageType
from pygls.lsp.server import LanguageServer

LOGGER_NAME = "xqls"

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CLIENT_FORMAT = "%(levelname)s - %(message)s"


def message_type(levelno: int) -> MessageType:
    if levelno >= logging.ERROR:
        return MessageType.Error
    if levelno >= logging.WARNING:
        return MessageType.Warning
    if levelno >= logging.INFO:
        return MessageType.Info
    return MessageType.Log


class LspLogHandler(logging.Handler):
    """Forwards log records to the client's output channel."""

    def __init__(self, ls: Optional[LanguageServer]):
        super().__init__()
        self.ls = ls

    def emit(self, record):
        # Nothing to forward to before a server is attached
        if self.ls is None or not hasattr(self.ls, "window_log_message"):
            return
        try:
            self.ls.window_log_message(
                LogMessageParams(
                    message=self.format(record), type=message_type(record.levelno)
                )
            )
        except Exception:
            self.handleError(record)


def setup_logging(ls: LanguageServer, level: int = logging.INFO) -> logging.Logger:
    """
    Attach the ``xqls`` logger to a language server.

    Calling this again, e.g. for a second server in the same process, points
    the existing client handler at the new server instead of adding another.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    lsp_handler = next(
        (h for h in logger.handlers if isinstance(h, LspLogHandler)), None
    )
    if lsp_handler is not None:
        lsp_handler.ls = ls
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    lsp_handler = LspLogHandler(ls)
    lsp_handler.setFormatter(logging.Formatter(CLIENT_FORMAT))

    logger.addHandler(console_handler)
    logger.addHandler(lsp_handler)
    return logger


def set_log_level(level: Union[int, str]) -> None:
    """Change the verbosity, e.g. from the ``logLevel`` initialization option."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    if not isinstance(level, int):
        logging.getLogger(LOGGER_NAME).warning("Unknown log level: %s", level)
        return
    logging.getLogger(LOGGER_NAME).setLevel(level)

import logging
import threading

_logged_keys = set()
_lock = threading.Lock()


def log_once(logger: logging.Logger, key: str, level: str, message: str, *args) -> bool:
    """
    Log a message exactly once per process for the given key.
    Returns True when the message was emitted.
    """
    with _lock:
        if key in _logged_keys:
            return False
        _logged_keys.add(key)

    getattr(logger, level)(message, *args)
    return True


def reset_log_once() -> None:
    with _lock:
        _logged_keys.clear()

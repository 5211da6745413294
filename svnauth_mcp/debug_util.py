import os, logging, sys

logger = logging.getLogger("svnauth_mcp")

def _ensure_logger():
    """Attach a basic StreamHandler if none present.

    Done lazily so importing the package never overrides the host
    application's logging configuration. A handler is only added once a
    debug message is actually emitted (DEBUG_VERBOSE=1).
    """
    if logger.handlers:
        return
    logger.setLevel(logging.INFO)
    h = logging.StreamHandler(stream=sys.stdout)
    fmt = logging.Formatter('%(asctime)s %(levelname)s %(message)s')
    h.setFormatter(fmt)
    logger.addHandler(h)

def dbg(msg: str):
    """Emit a debug info line when DEBUG_VERBOSE=1.

    Never pass secret material here; callers log file names, counts and
    statuses only.
    """
    if os.environ.get('DEBUG_VERBOSE') == '1':
        _ensure_logger()
        logger.info('[debug] %s', msg)

def trace_enabled() -> bool:
    """Per-line parser tracing switch (DEBUG_AUTH_PARSER=1)."""
    return os.environ.get('DEBUG_AUTH_PARSER') == '1'

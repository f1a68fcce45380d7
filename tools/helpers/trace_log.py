#!/usr/bin/env python3
"""
trace_log.py

Lightweight TRACE logger shared by the combine_rules tools. Importing this
module registers the TRACE level (5) and a Logger.trace() method.
"""
import logging
import sys

TRACE_LEVEL_NUM = 5
logging.addLevelName(TRACE_LEVEL_NUM, "TRACE")


def _trace(self, message, *args, **kws):
    if self.isEnabledFor(TRACE_LEVEL_NUM):
        self._log(TRACE_LEVEL_NUM, message, args, **kws)


logging.Logger.trace = _trace


def setup_logger(verbose: bool = True, stream=None):
    level = TRACE_LEVEL_NUM if verbose else logging.INFO
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

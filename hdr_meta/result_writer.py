import logging
import os
from datetime import datetime

from .constants import (
    FILE_DATE_FORMAT, LOG_FILE_PREFIX, LOG_TIMESTAMP_FORMAT, RESULT_FILE_PREFIX,
)

logger = logging.getLogger(__name__)


def default_output_path(prefix, directory=None, now=None):
    """<directory>/<prefix>_MMddyy_hhmm.txt, directory defaulting to the cwd."""
    now = now or datetime.now()
    directory = directory or os.getcwd()
    return os.path.join(directory, prefix + now.strftime(FILE_DATE_FORMAT) + ".txt")


def default_log_path(directory=None, now=None):
    return default_output_path(LOG_FILE_PREFIX, directory, now)


def default_result_path(directory=None, now=None):
    return default_output_path(RESULT_FILE_PREFIX, directory, now)


def format_result_line(entry):
    max_fall, max_cll = entry.metrics.values()
    return f"{entry.path}\t{max_fall:g}\t{max_cll:g}\n"


class ResultLogger:
    """
    Appends batch output to the result file and the processed-file log.

    Each recorded entry adds ``path<TAB>maxFALL<TAB>maxCLL`` to the result
    file and ``path<TAB>timestamp`` to the log; the log also gets a
    timestamp line when opened, marking the start of a run.
    """

    def __init__(self, result_path, log_path, clock=datetime.now):
        self.result_path = result_path
        self.log_path = log_path
        self._clock = clock
        self._result_file = None
        self._log_file = None
        self.recorded = 0

    def open(self):
        self._log_file = open(self.log_path, "a", encoding="utf-8")
        try:
            self._result_file = open(self.result_path, "a", encoding="utf-8")
        except OSError:
            self._log_file.close()
            self._log_file = None
            raise
        self._log_file.write(self._timestamp() + "\n")
        logger.debug("Appending results to %s, log to %s", self.result_path, self.log_path)
        return self

    def _timestamp(self):
        return self._clock().strftime(LOG_TIMESTAMP_FORMAT)

    def record(self, entry):
        self._result_file.write(format_result_line(entry))
        self._log_file.write(f"{entry.path}\t{self._timestamp()}\n")
        # Entry must be on disk before the next file is analyzed
        self._result_file.flush()
        self._log_file.flush()
        self.recorded += 1

    def close(self):
        for f in (self._result_file, self._log_file):
            if f is not None:
                f.close()
        self._result_file = None
        self._log_file = None

    def __enter__(self):
        return self.open()

    def __exit__(self, *args):
        self.close()

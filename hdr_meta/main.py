import sys
import os
import argparse
import logging

import numpy as np

from . import __version__
from .active_area import vote_active_area
from .analysis import FrameStatus, Region
from .batch import BatchScheduler
from .constants import DEFAULT_ACTIVE_AREA_SAMPLE_SIZE, DEFAULT_WORKER_COUNT
from .file_list import (
    exclude_processed, find_tiff_files, read_file_list, safe_absolute_path, select_mandatory,
)
from .log_config import setup_logging
from .luminance import ColorSpace, NumericAnomalyError, RangePolicy
from .result_writer import ResultLogger, default_log_path, default_result_path

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="hdr_meta",
        description="HDR Meta Data Logger: maxFALL/maxCLL of 16-bit TIFF frames")
    parser.add_argument("folder", nargs="?", help="Folder to scan for TIFF files (default: current directory)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-r", "--range", dest="range_policy", choices=[p.value for p in RangePolicy],
                        default=RangePolicy.FULL.value, help="Luminance range (default FULL)")
    parser.add_argument("-c", "--colorspace", dest="color_space", choices=[c.value for c in ColorSpace],
                        default=ColorSpace.BT2020.value, help="Color space (default 2020)")
    parser.add_argument("-y", "--y-offset", dest="y_offset", type=int, help="First row of the active area")
    parser.add_argument("-d", "--y-length", dest="y_length", type=int, help="Number of rows in the active area")
    parser.add_argument("-l", "--loglist", dest="log_list", help="File to log processed files to")
    parser.add_argument("-m", "--filelist", dest="file_list", help="File listing the files to process")
    parser.add_argument("-p", "--processedfiles", dest="processed_files",
                        help="File listing files already processed (skipped)")
    parser.add_argument("-n", "--result-file", dest="result_file", help="File to append results to")
    parser.add_argument("-t", "--thread-count", dest="thread_count", type=int, default=DEFAULT_WORKER_COUNT,
                        help=f"Number of worker threads (default {DEFAULT_WORKER_COUNT})")
    parser.add_argument("-s", "--sample-size", dest="sample_size", type=int,
                        default=DEFAULT_ACTIVE_AREA_SAMPLE_SIZE,
                        help="Files sampled to detect the active area")
    parser.add_argument("--seed", type=int, help="Seed for active area sampling")
    parser.add_argument("--yes", action="store_true", help="Continue without asking for confirmation")
    parser.add_argument("--log-file", dest="log_file", help="Also write diagnostics to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose (DEBUG) logging")
    return parser


def confirm_from_stdin(message):
    """Ask on the console; anything but N/n continues."""
    print(message)
    try:
        answer = input()
    except EOFError:
        answer = ""
    return answer.strip() not in ("N", "n")


def _fail(message):
    print(f"Error: {message}")
    return 1


def _resolve_region(args, files, range_policy, confirm, rng):
    """Region from -y/-d, or voted from a sample of files when neither is given."""
    if args.y_offset is not None or args.y_length is not None:
        y_offset = args.y_offset or 0
        y_length = args.y_length or 0
        if y_length <= 0:
            raise ValueError("You must specify a vertical pixel length greater than 0, i.e. -d 1600.")
        return Region(y_offset, y_length)

    print("Scanning Active Dimensions... ")
    consensus = vote_active_area(files, args.sample_size, rng)
    winner = consensus.winner
    if winner is None:
        raise ValueError("No files were sampled; specify -y and -d.")

    print(f"Dimensions with the highest count {winner.observation.key}: "
          f"{winner.count} of {len(consensus.sampled)} checked")

    suggested = [policy for policy in consensus.range_suggestions if policy is not range_policy]
    if suggested:
        logger.warning("Sampled frames look like %s range but %s range is selected",
                       "/".join(p.value for p in suggested), range_policy.value)

    if consensus.disagreement:
        print("!!!!! NOT ALL OF THE FILES HAVE THE SAME ACTIVE DIMENSION AREA!!!!!")
        print("THE FOLLOWING DIMENSION COUNTS WERE FOUND!!!")
        for line in consensus.describe():
            print(line)
        if not confirm("DO YOU WANT TO CONTINUE AND USE THE HIGHEST COUNT? OTHERWISE PRESS N AND "
                       "RESTART SPECIFYING THE Y AND LENGTH PARAMETERS FROM THE COMMAND LINE."):
            return None
        print("Continuing")

    if consensus.region is None:
        raise ValueError("Unable to detect an active area in the sampled files; specify -y and -d.")
    return consensus.region


def run(args, confirm=confirm_from_stdin, rng=None):
    """Execute a batch for parsed arguments. Returns the process exit status."""
    range_policy = RangePolicy(args.range_policy)
    color_space = ColorSpace(args.color_space)

    if args.thread_count < 1:
        return _fail("You must specify a number of threads greater than 0.")

    scan_path = safe_absolute_path(args.folder or os.getcwd())
    if not os.path.exists(scan_path):
        return _fail(f"{scan_path} does not exist.")
    if not os.path.isdir(scan_path):
        return _fail(f"{scan_path} is not a folder path.")

    log_path = safe_absolute_path(args.log_list) if args.log_list else default_log_path()
    result_path = safe_absolute_path(args.result_file) if args.result_file else default_result_path()

    print("Starting!")
    print("Scanning Files... ")
    files = find_tiff_files(scan_path)

    if args.file_list:
        mandatory = read_file_list(safe_absolute_path(args.file_list))
        if not mandatory:
            return _fail("Unable to open the mandatory file list OR the file was empty.")
        files, missing = select_mandatory(files, mandatory)
        if missing:
            for name in missing:
                print(f"Can't find the following file in the list: {name}")
            if not confirm(f"{len(missing)} FILE(S) ARE MISSING! DO YOU WANT TO CONTINUE? (Y)es or (N)o?"):
                print("Aborting!!!")
                return 1
            print("Continuing")

    if args.processed_files:
        processed = read_file_list(safe_absolute_path(args.processed_files))
        if not processed:
            return _fail("Unable to open the processed file log OR the file was empty.")
        files = exclude_processed(files, processed)

    if not files:
        print("No files to process.")
        return 0

    try:
        region = _resolve_region(args, files, range_policy, confirm,
                                 rng if rng is not None else np.random.default_rng(args.seed))
    except ValueError as e:
        return _fail(str(e))
    if region is None:
        print("Aborting!!!")
        return 1

    print(f"Will begin processing the path {scan_path}:")
    print("The following parameters:")
    print(f"\tUse {range_policy.value.capitalize()} Range")
    print(f"\tUse {color_space.value} Color Space")
    print(f"\tyOffset {region.row_offset}")
    print(f"\ty length {region.row_count}")
    print(f"\tloglistFilePath {log_path}")
    print(f"\tresultFilePath {result_path}")
    print(f"\tnumberOfThreads {args.thread_count}")

    try:
        scheduler = BatchScheduler(args.thread_count, region, color_space, range_policy)
    except NumericAnomalyError as e:
        return _fail(str(e))

    print(f"Ready to process: {len(files)} files.")

    failures = 0
    try:
        with ResultLogger(result_path, log_path) as writer:
            for entry in scheduler.run(files):
                writer.record(entry)
                if entry.metrics.status is not FrameStatus.OK:
                    failures += 1
    except OSError as e:
        return _fail(f"Can't write results: {e}")

    if failures:
        print(f"{failures} file(s) could not be analyzed, see {result_path}")
    print("Finished!")
    return 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)

    confirm = (lambda message: True) if args.yes else confirm_from_stdin
    sys.exit(run(args, confirm))

if __name__ == "__main__":
    main()

"""
Discovery of frame files and filtering against mandatory / processed lists.

Lists are matched by file name only (the last path component), so a list
written on another machine, including one using Windows separators, still
selects the files found locally.
"""

import logging
import os

from .constants import TIFF_EXTENSIONS

logger = logging.getLogger(__name__)


def safe_absolute_path(path):
    """Expand a leading ~ and resolve the path to its canonical form."""
    return os.path.realpath(os.path.expanduser(os.fspath(path)))


def find_tiff_files(root):
    """Recursively collect TIFF files under root, sorted case-insensitively."""
    found = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            if name.lower().endswith(TIFF_EXTENSIONS):
                found.append(os.path.join(dirpath, name))
    found.sort(key=str.lower)
    logger.debug("Found %d TIFF files under %s", len(found), root)
    return found


def read_file_list(path):
    """
    Read one path per line, skipping blank lines.

    Anything after a tab is ignored, which lets a processed-file log
    ("path<TAB>timestamp") be read back as a list. An unreadable file
    yields an empty list.
    """
    entries = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                entry = line.rstrip("\r\n").split("\t", 1)[0]
                if entry:
                    entries.append(entry)
    except OSError as e:
        logger.error("Unable to open the file list %s: %s", path, e)
        return []
    return entries


def file_name(path):
    if "\\" in path:
        return path.split("\\")[-1]
    return path.split("/")[-1]


def map_by_name(paths):
    """Map file name -> path; later paths win, empty names are skipped."""
    mapping = {}
    for path in paths:
        name = file_name(path)
        if name:
            mapping[name] = path
    return mapping


def select_mandatory(found, mandatory):
    """
    Keep the found files named in the mandatory list.

    Returns:
        tuple: (selected paths in file name order, names not found)
    """
    found_map = map_by_name(found)
    selected = []
    missing = []
    for name in sorted(map_by_name(mandatory)):
        if name in found_map:
            selected.append(found_map[name])
        else:
            logger.warning("Can't find the following file in the list: %s", name)
            missing.append(name)
    return selected, missing


def exclude_processed(found, processed):
    """Drop found files whose name was already processed, in file name order."""
    processed_names = map_by_name(processed)
    found_map = map_by_name(found)
    remaining = [found_map[name] for name in sorted(found_map) if name not in processed_names]
    logger.debug("%d of %d files already processed",
                 len(found_map) - len(remaining), len(found_map))
    return remaining

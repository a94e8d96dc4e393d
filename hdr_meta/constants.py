# Sample domain of a decoded frame (16-bit unsigned)
SAMPLE_COUNT = 65536
SAMPLE_MAX = 65535

# Full range: black at code 0, white at 65535
FULL_RANGE_BLACK = 0
FULL_RANGE_SPAN = 65535

# Legal (narrow) range: black at 4096, white at 60160
LEGAL_RANGE_BLACK = 4096
LEGAL_RANGE_SPAN = 60160 - LEGAL_RANGE_BLACK

# SMPTE ST 2084 (PQ) constants, 10000 nit peak
PQ_M1 = 0.1593017578
PQ_M2 = 78.84375
PQ_C1 = 0.8359375
PQ_C2 = 18.8515625
PQ_C3 = 18.6875
PQ_PEAK_NITS = 10000.0

# Luma coefficients (R, G, B)
BT2020_COEFFICIENTS = (0.2627, 0.6780, 0.0593)
P3D65_COEFFICIENTS = (0.228975, 0.691739, 0.0792869)

# Sentinel (maxFALL, maxCLL) pairs written for failed frames
CANNOT_OPEN_SENTINEL = (-1.0, -1.0)
INVALID_REGION_SENTINEL = (-2.0, -2.0)

# Rows reduced per step when accumulating a frame
ANALYSIS_CHUNK_ROWS = 256

# Batch defaults
DEFAULT_WORKER_COUNT = 4
DEFAULT_ACTIVE_AREA_SAMPLE_SIZE = 10

# File discovery
TIFF_EXTENSIONS = (".tif", ".tiff")

# Output files
LOG_FILE_PREFIX = "hdr_log"
RESULT_FILE_PREFIX = "hdr_results"
FILE_DATE_FORMAT = "_%m%d%y_%H%M"
LOG_TIMESTAMP_FORMAT = "%a %b %d %H:%M:%S %Y"

import re
from setuptools import setup, find_packages

# Read version from hdr_meta/__init__.py
with open("hdr_meta/__init__.py") as f:
    version = re.search(r'__version__\s*=\s*"(.+?)"', f.read()).group(1)

setup(
    name="hdr_meta",
    version=version,
    description="maxFALL / maxCLL logger for 16-bit HDR TIFF frame sequences",
    packages=find_packages(exclude=["test", "test.*", "scripts"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "opencv-python",
        "scikit-image",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'hdr_meta=hdr_meta.main:main',
        ],
    },
)

"""Setup configuration for batchfeed package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = (
    readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""
)

setup(
    name="batchfeed",
    version="1.0.0",
    description="Checkpointed selection of newly-arrived batch directories for incremental ingestion",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "docs", "docs.*"]),
    python_requires=">=3.9",
    install_requires=[
        "fsspec>=2023.1.0",
        "python-dotenv>=1.0.0",
        "pyyaml>=6.0",
        "tenacity>=8.0.0",  # For retry logic
    ],
    extras_require={
        "s3": [
            "s3fs>=2023.1.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=22.0.0",
            "flake8>=5.0.0",
            "mypy>=0.990",
            "types-PyYAML",
        ],
    },
    entry_points={
        "console_scripts": [
            "batchfeed=batchfeed.__main__:main",
        ],
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    keywords="data-engineering ingestion checkpoint incremental-load batch storage-backends",
)

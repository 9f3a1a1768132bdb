"""
deskvfs setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="deskvfs",
    version="1.0.0",
    description="deskvfs — Path-addressed virtual file system on an async record store",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "deskvfs=deskvfs.cli:main",
        ],
    },
    install_requires=[
        "sqlalchemy[asyncio]>=2.0",
        "aiosqlite>=0.19",
        "pydantic>=2.5",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
)

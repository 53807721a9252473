"""
Setup script for skillpath-engine.

Skillpath is the learning-path core of an IDE learning assistant. It
turns a developer's evolving competency state into an ordered curriculum
over a prerequisite graph and re-sequences it after every completed
activity:

1. Skill Graph - append-only prerequisite DAG with deterministic ordering
2. Skill Profiler - competency maps, gaps and progress trends
3. Path Builder / Adaptation Engine - generate, patch and re-difficulty paths
"""

from setuptools import find_packages, setup

setup(
    name="skillpath-engine",
    version="1.0.0",
    description="Learning path generation and skill adaptation engine",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # Database
        "sqlalchemy[asyncio]>=2.0.0",
        "aiosqlite>=0.19.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "hypothesis>=6.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning adaptive curriculum prerequisites skills",
)

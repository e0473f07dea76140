"""Setup configuration for research-swarm package."""

from setuptools import setup, find_packages

setup(
    name="research-swarm",
    version="0.1.0",
    description="Session memory and dependency-ordered coordination for research agent swarms",
    packages=find_packages(where="src", exclude=["tests", "tests.*"]),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0.0",
        "pydantic-core",
        "python-dotenv>=1.0.0",
        "redis[hiredis]>=5.0.1",
        "qdrant-client>=1.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.11.0",
            "ruff>=0.1.0",
            "mypy>=1.5.0",
            "black>=23.0.0",
        ],
    },
)

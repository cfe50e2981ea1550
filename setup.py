"""Setup script for bqpipe."""

from setuptools import find_packages, setup

setup(
    name="bqpipe",
    version="0.1.0",
    description="Run ordered pipelines of parameterised BigQuery SQL files",
    author="bqpipe Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "bqpipe": ["py.typed"],
    },
    install_requires=[
        "google-cloud-bigquery>=3.11.0",  # Query engine client
        "google-auth>=2.22.0",  # Credentials and impersonation
        "typer>=0.9.0",  # CLI framework
        "rich>=13.0.0",  # Console output
        "pyyaml>=6.0",  # YAML settings files
        "python-dotenv>=1.0.0",  # .env loading
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.1.0",
            "black>=22.1.0",
            "isort>=5.10.1",
            "flake8>=4.0.1",
            "mypy>=1.0.0",  # Type checking
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "bqpipe=bqpipe.cli.main:cli",
        ],
    },
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
    ],
)

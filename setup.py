from setuptools import setup, find_packages

setup(
    name="nwis-qw-extract",
    version="0.1.0",
    description="NWIS discrete water-quality sample extraction into plot and data tables",
    author="Water Quality Review Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "pandas>=2.0",
        "numpy>=1.24",
        "pydantic>=2.0",
        "SQLAlchemy>=2.0",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "pytz>=2023.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
)

# setup.py
from setuptools import setup, find_packages

setup(
    name="ledger-insights",
    version="0.1.0",
    description="Analytics for personal finance ledgers: recurring payments, anomalies, trends, tax and health score",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.9",
    install_requires=[
        "click>=7.0",
        "pyyaml>=5.3",
        "pandas>=1.1",
        "python-dotenv>=0.19",
        "mcp>=1.0,<2",
        "anyio>=3.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "ledger-insights=ledger_insights.cli:main",
            "ledger-insights-mcp=ledger_insights.mcp_server:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)

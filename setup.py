from setuptools import setup, find_packages

setup(
    name="windowguard",
    version="0.1.0",
    description="Fixed and sliding window rate limiting with in-memory and Redis storage",
    packages=find_packages(include=["windowguard", "windowguard.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "pydantic",
        "pydantic-settings",
        "redis>=5.0",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
)

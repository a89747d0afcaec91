from setuptools import setup, find_packages

setup(
    name="rolling-limiter",
    version="0.5.0",
    description="Rolling-window rate limiter, in memory or backed by Redis",
    packages=find_packages(include=["rolling_limiter", "rolling_limiter.*"]),
    python_requires=">=3.11",
    install_requires=[
        "redis>=5.0.1",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)

"""Setup script for the project."""

from setuptools import setup, find_packages

setup(
    name="workout-planner",
    version="1.0.0",
    description="Workout plan scheduling: weekly templates, calendar generation and rescheduling",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn[standard]>=0.27.0",
        "motor>=3.3.0",
        "pymongo>=4.6.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "redis>=5.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.26.0",
        ],
    },
    python_requires=">=3.10",
)

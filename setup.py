from setuptools import setup, find_packages

setup(
    name="social_relay",
    version="1.0.0",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "aiohttp>=3.8.1",
        "cryptography>=3.4.7",
        "fastapi>=0.100.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "python-dotenv>=0.19.0",
        "python-multipart>=0.0.6",
        "uvicorn>=0.15.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "httpx>=0.24",
        ],
    },
    python_requires=">=3.8",
    description="Relays text posts to Bluesky and Threads and runs the Threads OAuth flow",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
    ],
)

#!/usr/bin/env python

from setuptools import setup

setup(
    name="imgbed",
    version="1.0.0",
    description="Image proxy and management API for images stored in a GitHub repository",
    packages=["imgbed", "imgbed.api", "imgbed.store"],
    include_package_data=True,
    zip_safe=False,
    keywords=["API", "images", "github", "proxy"],
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    ],
    python_requires=">=3.10",
    install_requires=[
        "fastapi[all]",
        "elasticsearch~=8.6",
        "python-multipart",
        "python-dotenv",
        "httpx",
        "authlib",
        "pydantic>=2",
        "pydantic-settings",
        "class-doc",
        "uvicorn",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-httpx",
            "anyio",
            "mypy",
            "flake8",
            "pre-commit",
        ]
    },
    entry_points={
        "console_scripts": [
            "imgbed = imgbed.__main__:main",
        ]
    },
)

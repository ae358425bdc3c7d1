#!/usr/bin/env python

from setuptools import setup

setup(
    name="lfsmgmt",
    version="0.1.0",
    description="Management console for a content addressable LFS object store",
    packages=["lfsmgmt", "lfsmgmt.api", "lfsmgmt.store"],
    package_data={"lfsmgmt": ["templates/*.html", "css/*.css"]},
    include_package_data=True,
    zip_safe=False,
    keywords=["LFS", "git", "object storage"],
    classifiers=[
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Topic :: Software Development :: Version Control :: Git",
    ],
    python_requires=">=3.10",
    install_requires=[
        "fastapi[all]",
        "anyio",
        "jinja2",
        "python-multipart",
        "python-dotenv",
        "pydantic>=2",
        "pydantic-settings",
        "class-doc",
        "bcrypt",
        "peewee",
        "elasticsearch~=8.6",
        "uvicorn",
    ],
    extras_require={
        "dev": [
            "pytest",
            "httpx",
            "mypy",
            "flake8",
        ]
    },
    entry_points={
        "console_scripts": [
            "lfsmgmt = lfsmgmt.__main__:main"
        ]
    },
)

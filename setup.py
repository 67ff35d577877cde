"""
Setup script for the MITS11 installer bootstrapper.
"""

from setuptools import setup, find_packages

# Read the README file
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Read requirements
with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="mits11-installer",
    version="1.0.0",
    author="Arbin",
    author_email="",
    description="Bootstrap installer that fetches, verifies and launches MITS11 releases",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/arbin-com/mits11-release",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: MacOS",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Installation/Setup",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mits11-installer=mits11_installer.main:main",
        ],
    },
    scripts=["run.py"],
    keywords="installer bootstrap release checksum",
    project_urls={
        "Source": "https://github.com/arbin-com/mits11-release",
    },
)

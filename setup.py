#!/usr/bin/env python3
from setuptools import setup, find_packages
from pathlib import Path
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

def get_version():
    try:
        with open('config/constants.py', 'r', encoding='utf-8') as f:
            for line in f:
                if line.startswith('__version__'):
                    return line.split('=')[1].strip().strip('"\'')
    except OSError:
        pass
    return "1.0.0"

setup(
    name="mynest-sniffer",
    version=get_version(),
    description="MyNest Media Sniffer - find downloadable images, videos and audio on a web page",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="MyNest",
    packages=find_packages(include=['sniffer', 'sniffer.*', 'config', 'config.*']),
    include_package_data=True,
    py_modules=["mynest_sniff"],
    python_requires=">=3.9",
    install_requires=[
        "requests>=2.28.0",
        "urllib3>=1.26.0",
        "beautifulsoup4>=4.11.0",
        "lxml>=4.9.0",
        "playwright>=1.36.0",
        "rich>=13.0.0",
    ],
    extras_require={
        'dev': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'mynest-sniff=mynest_sniff:main',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Multimedia",
        "Topic :: Utilities",
    ],
    keywords=[
        "media",
        "sniffer",
        "downloader",
        "scraping",
        "playwright",
    ],
)

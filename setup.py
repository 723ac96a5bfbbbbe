"""Setup configuration for artmod."""

from setuptools import setup, find_packages

setup(
    name="artmod",
    version="0.1.0",
    description="Content moderation pipeline for user-submitted artwork",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "Pillow>=10.0",
        "pillow-heif>=0.16",
        "requests>=2.31",
        "PyYAML>=6.0",
        "python-dotenv>=1.0",
        "prompt_toolkit>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "artmod=artmod.main:main",
        ],
    },
)

"""Setup configuration for Modwatch Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="modwatch",
    version="0.1.0",
    description="A rule-based Discord moderation and audit logging bot",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord",
        "python-dotenv",
        "PyYAML",
        "prompt_toolkit",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "modwatch=modwatch.main:main",
        ],
    },
)

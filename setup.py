from setuptools import setup

setup(
    name="filegen",
    version="1.0.0",
    description="Write files of reproducible content and verify them later",
    packages=["filegen"],
    install_requires=[
        "click",
        "loguru",
    ],
    extras_require={"test": ["pytest>=6.0"]},
    python_requires=">=3.8",
    scripts=["filegen/filegen_cli"],
)

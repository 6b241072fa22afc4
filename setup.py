# polyunion setuptools configuration
from setuptools import setup, find_packages

setup(
    name="polyunion",
    version="0.1.0",
    description="Row-wise Boolean union of planar and geographic multi-polygon columns",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    install_requires=[
        "torch>=2.0",
        "numpy>=1.21",
        "psutil>=5.8",
    ],
    extras_require={
        "arrow": ["pyarrow>=12"],
        "test": ["pytest>=7", "pyarrow>=12"],
    },
)

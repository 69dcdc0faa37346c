from setuptools import setup, find_packages

setup(
    name="polymesh-kernel",
    version="0.1.0",
    description="Editable polygon mesh kernel: n-gon topology, extrude/bevel/knife/inset/bridge editing and boolean operations",
    author="",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "scipy",
        "trimesh",
        "matplotlib",
        "tqdm",
        "networkx",
        "loguru",
    ],
    extras_require={
        "test": ["pytest"],
    },
)

from setuptools import setup, find_packages


with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="pxgraph",
    version="0.3.0",
    author="Andrey Golovanov",
    description="Lighting-control topology modeling and pixel-capacity analysis.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"pxgraph": ["schemas/*.json"]},
    python_requires=">=3.9",
    install_requires=[
        "networkx",
        "PyYAML",
        "jsonschema",
        "httpx",
    ],
    extras_require={"test": ["pytest"]},
    tests_require=["pytest"],
    entry_points={"console_scripts": ["pxgraph=pxgraph.cli:main"]},
)

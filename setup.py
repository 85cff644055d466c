import setuptools
from setuptools import find_packages

with open("readme.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()


vars2find = ["__author__", "__version__", "__url__"]
vars2readme = {}
with open("./bizsnap/__init__.py") as f:
    for line in f.readlines():
        for v in vars2find:
            if line.startswith(v):
                line = line.replace(" ", "").replace('"', "").replace("'", "").strip()
                vars2readme[v] = line.split("=")[1]

core_deps = [
    "pydantic>=2.0",
    "tenacity",
    "cryptography>=41.0",
    "redis[hiredis]>=5.0.1",
]

setuptools.setup(
    name="bizsnap",
    url=vars2readme["__url__"],
    version=vars2readme["__version__"],
    author=vars2readme["__author__"],
    description="Backup, restore and scheduled snapshots for business-management data",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=core_deps,
    extras_require={
        "api": [
            "fastapi>=0.100.0",
            "pydantic-settings>=2.0",
            "python-multipart",
            "uvicorn",
        ],
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "httpx",
        ],
        "all": [
            "fastapi>=0.100.0",
            "pydantic-settings>=2.0",
            "python-multipart",
            "uvicorn",
        ],
    },
)

"""Python setup.py for vmss_instance_types package"""
import io
import os
from setuptools import find_packages, setup


def read(*paths, **kwargs):
    """Read the contents of a text file safely.
    >>> read("vmss_instance_types", "VERSION")
    '0.1.0'
    >>> read("README.md")
    ...
    """

    content = ""
    with io.open(
        os.path.join(os.path.dirname(__file__), *paths),
        encoding=kwargs.get("encoding", "utf8"),
    ) as open_file:
        content = open_file.read().strip()
    return content


def read_requirements(path):
    return [
        line.strip()
        for line in read(path).split("\n")
        if not line.startswith(('"', "#", "-", "git+"))
    ]


setup(
    name="vmss_instance_types",
    version=read("vmss_instance_types", "VERSION"),
    description="Resolves Azure VM scale set SKUs to vCPU / memory / GPU capacity",
    long_description=read("README.md"),
    long_description_content_type="text/markdown",
    author="vmss-instance-types",
    packages=find_packages(exclude=["tests", ".github"]),
    package_data={"vmss_instance_types": ["VERSION", "data/*.yaml"]},
    install_requires=read_requirements("requirements.txt"),
    entry_points={
        "console_scripts": [
            "vmss_instance_types = vmss_instance_types.__main__:main"
        ]
    },
    extras_require={"test": read_requirements("requirements-test.txt")},
)

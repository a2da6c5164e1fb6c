import re

import setuptools

with open("pyaxeos/__init__.py", "r") as fh:
    version_tuple = re.search(r"^version_tuple = \((\d+), (\d+), (\d+)\)", fh.read(), re.M).groups()
__version__ = '.'.join(version_tuple)

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="pyaxeos",
    version=__version__,
    description="Python module to monitor and configure AxeOS (Bitaxe) mining devices",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(),
    install_requires=[
        'requests',
        'urllib3',
        'pydantic>=2.0',
        'pydantic-settings>=2.0',
        'python-dotenv',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
        ],
    },
    python_requires='>=3.8',
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)

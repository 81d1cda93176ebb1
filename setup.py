from setuptools import find_packages, setup

setup(
    name="chronofield",
    version="0.1.0",
    description=(
        "Calendar fields and arithmetic on a millisecond timeline, "
        "with pluggable calendar systems and time zones"
    ),
    license="MIT",
    python_requires=">=3.9",
    package_dir={"": "pysrc"},
    packages=find_packages("pysrc"),
    install_requires=[
        "tzdata>=2020.1",
        "tzlocal>=4.0; sys_platform != 'darwin' and sys_platform != 'linux'",
    ],
    extras_require={
        "test": [
            "pytest",
            "hypothesis>=6.0",
            "time-machine>=2.0,<3; implementation_name == 'cpython'",
        ],
    },
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)

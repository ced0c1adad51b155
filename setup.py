import setuptools

setuptools.setup(
    name="cpu-allocator",
    version="0.1.0",
    description=(
        "Allocates cloud servers across regions for a minimum CPU count, "
        "a maximum price, or both"
    ),
    python_requires=">=3.11",
    packages=setuptools.find_packages(exclude=("tests*",)),
    install_requires=[
        "pydantic>2.0",
    ],
    extras_require={
        "test": ["pytest", "hypothesis"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    entry_points={
        "console_scripts": [
            "allocate-cpus = cpu_allocator.tools.allocate:main",
        ]
    },
    include_package_data=True,
    package_data={
        "": [
            "catalog/profiles/*.json",
        ]
    },
)

from setuptools import setup, find_packages

setup(
    name="zkbisect_package",
    version="0.1.0",
    description="A package to verify large Bitcoin Script computations by bisection",
    url="https://github.com/yourusername/zkbisect_package",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=["chain-gang", "PyYAML"],
    extras_require={"test": ["pytest", "py_ecc"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.12",
)

from setuptools import setup, find_packages

setup(
    name="gmxframe",
    version="0.1.0",
    description="Molecular frame assembly and GROMACS trajectory streaming",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "numpy",
        "pyyaml",
        "tqdm",
        "ovito"
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'gmxframe=gmxframe.cli:main',
        ],
    },
    python_requires=">=3.8",
)

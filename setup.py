from setuptools import setup, find_packages

setup(
    name="py-storagemark",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        'pyyaml>=5.1',
        'pydantic>=2.0',
        'click>=8.0',
        'rich>=12.0',
        'psutil>=5.8',
        'numpy>=1.22',
        'pandas>=1.4',
        'matplotlib>=3.6',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'storagemark=storagemark.cli:main',
        ],
    },
    python_requires='>=3.8',
)

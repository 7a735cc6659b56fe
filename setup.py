from setuptools import setup, find_packages

setup(
    name='tfrget',
    version='0.1.0',
    description='Download modules from Terraform and OpenTofu module registries',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    python_requires='>=3.11',
    install_requires=[
        'requests',
        'PyYAML',
        'urllib3',
        'rich',
        'platformdirs',
    ],
    extras_require={
        'test': [
            'pytest<9.1',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'tfrget=tfrget.cli:main',
        ],
    },
)

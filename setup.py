from setuptools import setup, find_packages

setup(
    name='k3sctl',
    version='0.1.0',
    packages=find_packages(include=['k3sctl', 'k3sctl.*']),
    include_package_data=True,
    install_requires=[
        'typer',
        'kubernetes',
        'python-dotenv',
        'requests',
        'urllib3',
        'pyyaml',
        'pydantic>=2',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'k3sctl=k3sctl.cli:app'
        ]
    },
    description='Idempotent provisioning of a single-node k3s control plane',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
    python_requires='>=3.8',
)

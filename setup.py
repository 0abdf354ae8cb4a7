#!/usr/bin/env python
# -*- coding: utf-8 -*-
from setuptools import setup, find_packages


deps = {
    'beaconsync': [
        "cached-property>=1.5.1,<3",
        "eth-abi>=4.0.0,<6",
        # eth-utils keccak (used for DEPOSIT_EVENT_TOPIC) needs a hashing backend
        "eth-hash[pycryptodome]>=0.3.1",
        "eth-typing>=3.0.0,<6",
        "eth-utils>=2.0.0,<6",
        # requests 2.21 is required to support idna 2.8 which is required elsewhere
        "requests>=2.21,<3",
        # `Session.get()` and `sqlalchemy.orm.declarative_base` need 1.4
        "SQLAlchemy>=1.4,<3",
        "termcolor>=1.1.0,<4",
    ],
    'test': [
        "hypothesis>=6.0",
        "factory-boy>=3.2,<4",
        "pytest>=7.0",
        "pytest-cov>=2.11.1",
        "pytest-mock>=3.6,<4",
        "pytest-randomly>=3.3.0,<4",
        "pytest-timeout>=1.4.2,<3",
    ],
    'lint': [
        "flake8>=6.0,<8",
        "flake8-bugbear>=23.0",
        "mypy>=1.0",
        "types-requests",
    ],
    'dev': [
        "bumpversion>=0.5.3,<1",
        "wheel",
        "setuptools>=36.2.0",
        "tox>=4,<5",
        "twine",
    ],
}


deps['dev'] = (
    deps['dev'] +
    deps['beaconsync'] +
    deps['test'] +
    deps['lint']
)


install_requires = deps['beaconsync']


setup(
    name='beaconsync',
    # *IMPORTANT*: Don't manually change the version here. Use the 'bumpversion' utility.
    version='0.1.0-alpha.1',
    description='Checkpointed sync core for a beacon chain indexer',
    author='Ethereum Foundation',
    include_package_data=True,
    python_requires=">=3.8,<4",
    install_requires=install_requires,
    extras_require=deps,
    license='MIT',
    zip_safe=False,
    keywords='ethereum beacon chain indexer eth2',
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
)

# setup.py
from setuptools import setup, find_packages

setup(
    name='textmorph',
    version='0.1.0',
    description='A retained-mode UI reconciliation engine for line-oriented text surfaces.',
    long_description=open('README.md', encoding='utf-8').read(),
    long_description_content_type='text/markdown',

    # Finds the `textmorph` and `textmorph_cli` packages
    packages=find_packages(exclude=['tests', 'tests.*']),

    install_requires=[
        'PySide6',
        'typer[all]',
        'PyYAML',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },

    # Creates an executable script named `textmorph` that calls the `app`
    # object inside `textmorph_cli.main`.
    entry_points={
        'console_scripts': [
            'textmorph = textmorph_cli.main:app',
        ],
    },

    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Intended Audience :: Developers',
        'Topic :: Software Development :: User Interfaces',
        'Topic :: Text Editors',
    ],
    python_requires='>=3.10',
)

#!/usr/bin/env python

import setuptools

setuptools.setup(
    name="pagenoter",
    version="0.3.0",
    description="Page-synchronised notes for PDF documents, kept in an outline text file.",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    package_data={"pagenoter": ["configs/default_config.yaml"]},
    include_package_data=True,
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    install_requires=['PyYAML>=5.3',
                      'qtpy>=2.0',
                      'PyQt5>=5.15',
                      'PyMuPDF>=1.23',
                      'termcolor>=1.1',
                      'colorama>=0.4; sys_platform=="win32"',
                      ],
    extras_require={
        'tests': ['pytest>=7'],
    },
    python_requires='>=3.8',

    entry_points={
        'console_scripts': [
            'pagenoter = pagenoter.gui.app:main',
        ],
    },


)

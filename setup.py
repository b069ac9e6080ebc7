"""
Setup script for TABC Prospect
"""

from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
try:
    with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
        long_description = f.read()
except FileNotFoundError:
    long_description = "TABC Prospect - Revenue estimates, leaderboards and prospect tracking for Texas mixed beverage permit holders, built on Comptroller open data."

# Read requirements from requirements.txt
def read_requirements():
    """Read requirements from requirements.txt file"""
    requirements_path = os.path.join(this_directory, 'requirements.txt')
    try:
        with open(requirements_path, 'r') as f:
            return [line.strip() for line in f if line.strip() and not line.startswith('#')]
    except FileNotFoundError:
        return []

setup(
    name='tabc-prospect',
    version='1.0.0',
    author='TABC Prospect Team',
    author_email='info@tabc-prospect.com',
    description='Prospecting dashboard core for Texas mixed beverage permit holders: revenue projection, leaderboards, ownership lookup and saved prospects',
    long_description=long_description,
    long_description_content_type='text/markdown',
    url='https://github.com/tabc-prospect/tabc-prospect',
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: Scientific/Engineering :: Information Analysis',
        'Topic :: Software Development :: Libraries :: Python Modules',
        'Topic :: Database',
        'Topic :: Office/Business :: Financial',
    ],
    python_requires='>=3.8',
    install_requires=read_requirements(),
    extras_require={
        'dev': [
            'pytest>=7.0.0',
            'pytest-asyncio>=0.21.0',
            'black>=22.0.0',
            'flake8>=5.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'tabc-prospect=tabc_prospect.cli:cli',
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords=[
        'texas', 'tabc', 'mixed-beverage', 'comptroller', 'socrata',
        'revenue-estimation', 'prospecting', 'cli', 'database'
    ],
)
import os
import io
from setuptools import setup

# variables used in buildout
here = os.path.abspath(os.path.dirname(__file__))
with io.open(os.path.join(here, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

with open(os.path.join(here, 'requirements.txt')) as f:
    set_parsed = f.read().splitlines()
install_requires = [req.strip() for req in set_parsed if req.strip() and not req.startswith('#')]

tests_requires = [
    'flake8',
    'pytest',
    'pytest-cov',
    'pytest-mock',
    'mock'
]


setup(
    name='amismith',
    version=open(os.path.join(here, "amismith/_version.py")).readlines()[-1].split()[-1].strip("\"'"),
    description='Bake Amazon Machine Images: launch an EC2 instance, converge it with chef-solo, snapshot it.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=['amismith'],
    zip_safe=False,
    license='MIT',
    classifiers=[
            'License :: OSI Approved :: MIT License',
            'Operating System :: POSIX :: Linux',
            'Programming Language :: Python',
            'Programming Language :: Python :: 3'
            ],
    python_requires='>=3.7',
    install_requires=install_requires,
    include_package_data=True,
    tests_require=tests_requires,
    extras_require={
        'test': tests_requires,
    },
    entry_points={
        'console_scripts': [
             'amismith = amismith.__main__:main',
        ]
    }
)

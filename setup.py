from setuptools import setup, find_packages
from pathlib import Path

# Read requirements.txt for the install_requires field
with open(Path(__file__).parent / 'requirements.txt') as f:
    requirements = [line for line in f.read().splitlines() if line and not line.startswith('#')]

# Read README.md if it exists
readme_path = Path(__file__).parent / 'README.md'
long_description = readme_path.read_text() if readme_path.exists() else 'TV Control digital signage appliance'

setup(
    name='tv_control',
    version='1.0.0',
    description='Downloads a signage video, plays it fullscreen on a schedule and switches the TV over HDMI-CEC.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    package_dir={'': 'src'},  # Tells setuptools packages are under src
    packages=find_packages(where='src',),  # Find packages in src
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'tv-control=tv_control.dispatcher:main',
            'tv-control-install=tv_control.installer:main',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX :: Linux',
    ],
    python_requires='>=3.9'
)

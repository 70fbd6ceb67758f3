from setuptools import find_packages, setup

try:
    from setuptools_scm import get_version

    version = get_version()
except (ImportError, LookupError):
    version = '0.1.0'

with open('README.rst') as readme_file:
    readme = readme_file.read()
description = 'Python modules to view large, multiresolution images served by a ViQi image service.'
long_description = readme

extraReqs = {
    'test': [
        'pytest',
        'pytest-asyncio',
    ],
}
extraReqs['all'] = sorted(set(req for reqs in extraReqs.values() for req in reqs))

setup(
    name='viqi-tiles',
    version=version,
    description=description,
    long_description=long_description,
    long_description_content_type='text/x-rst',
    license='Apache-2.0',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: 3.13',
    ],
    python_requires='>=3.9',
    install_requires=[
        'aiohttp',
        'cachetools',
        'numpy',
        'Pillow>=10.3',
    ],
    extras_require=extraReqs,
    include_package_data=True,
    keywords='viqi, image service, tile source, pyramid',
    packages=find_packages(exclude=['test', 'test.*']),
    zip_safe=False,
)

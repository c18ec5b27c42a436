import setuptools

setuptools.setup(
    name = 'splinepaths',
    version = '1.0',
    description = 'B-spline and linear path sampling for drawing grouped control points',
    license = 'MIT',
    packages = setuptools.find_packages(exclude=['tests']),
    python_requires = '>=3.6',
    install_requires = ['numpy'],
    extras_require = {'test': ['pytest', 'scipy']},
)

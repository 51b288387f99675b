from setuptools import setup, find_packages

setup(
    name='compositebayes',
    version='0.1.0',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.8',
    install_requires=[
        'pandas',
        'numpy',
        'scikit-learn'
    ],
    extras_require={
        'test': ['pytest'],
    },
    description='Composite Bayesian models: adaptive binning of a continuous label with one naive Bayes classifier per bin.',
)

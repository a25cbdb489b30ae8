# This is the setup file for the gaze divergence analysis repo. It is used to install the package and its dependencies.

from setuptools import setup, find_packages

setup(name='gaze_divergence',
   version='0.1.0',
	packages=find_packages(exclude=["tests", "tests.*"]),
	python_requires='>=3.9',
	install_requires=[
        "numpy>=1.25",
        "pandas",
        "scipy",
        "matplotlib",
        "seaborn>=0.12",
        "joblib",
        "tqdm",
    ],
	extras_require={
		"test": ["pytest"],
	},
	entry_points={
		'console_scripts': [
			'gaze-divergence=gaze_divergence.divergence.divergence_analysis:main',
		],
	},
)

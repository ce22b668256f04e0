from setuptools import setup, find_packages

setup(
    name="nba-playoff-forecaster",
    version="0.1.0",
    description="NBA playoff qualification models from team season statistics",
    author="Ben Rosen",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy>=1.22.4",
        "pandas>=1.5.3",
        "statsmodels>=0.14.0",
        "xgboost>=1.7.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "scikit-learn>=1.3.0",
        ],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "playoff-forecaster=playoff_forecaster.main:main",
        ],
    },
)

from setuptools import setup, find_packages

setup(
    name="embviz",
    version="0.1.0",
    description="Clustering and change detection on Google Satellite Embeddings (Earth Engine)",
    packages=find_packages(include=["embviz", "embviz.*"]),
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.10,<3.13",
    install_requires=[
        "earthengine-api>=0.1.380",
        "google-api-python-client>=2.0",
        "google-auth>=2.0",
        "numpy>=1.24",
        "rasterio>=1.3",
        "matplotlib>=3.7",
        "folium>=0.14",
        "pydantic>=1.10",
        "PyYAML>=6.0",
        "click>=8.1",
        "python-dotenv>=1.0",
        "tqdm>=4.65",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "embviz=embviz.cli.cli:cli",
        ],
    },
)

import setuptools

setuptools.setup(
    name="elasticache-sizing",
    version="0.1.0",
    description=(
        "Suggests ElastiCache Redis node types that can fit existing Redis servers"
    ),
    python_requires=">=3.10",
    packages=setuptools.find_packages(exclude=("tests*",)),
    install_requires=[
        "pydantic>2.0",
        "numpy",
        "boto3",
        "redis>=4.2",
        "jinja2>=3.1.0",
        "tabulate>=0.9.0",
    ],
    extras_require={
        "tools": ["requests"],
        "test": ["pytest", "hypothesis", "requests"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    entry_points={
        "console_scripts": [
            "elasticache-sizing = elasticache_sizing.tools.recommend:main",
            "fetch-pricing = elasticache_sizing.tools.fetch_pricing:main",
            "fetch-maxmemory = elasticache_sizing.tools.fetch_maxmemory:main",
        ]
    },
    include_package_data=True,
    package_data={
        "elasticache_sizing.hardware.profiles": ["maxmemory.json"],
    },
)

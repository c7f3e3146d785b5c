from setuptools import setup, find_packages

setup(
    name="image-pull-creds",
    version="0.1.0",
    description="Distributes registry pull credentials to every namespace and service account",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.11",
    install_requires=[
        "kubernetes>=28.1.0",
        "pyyaml>=6.0",
        "fastapi>=0.110.0",
        "pydantic>=2.0",
        "uvicorn>=0.29.0",
        "click>=8.1.0",
        "google-auth>=2.23.0",
        "requests>=2.31.0",
        "urllib3>=1.24.2",
        "structlog>=24.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "httpx>=0.27.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "image-pull-creds=image_pull_creds.cli:main",
        ],
    },
)

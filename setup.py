from setuptools import setup, find_packages

setup(
    name="kya-registry",
    version="0.2.0",
    description="Signed reputation commitments for autonomous agents — HMAC and EVM",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "fastapi>=0.110",
        "pydantic>=2.0",
        "slowapi>=0.1.9",
        "python-json-logger>=3.1",
        "uvicorn>=0.23",
        "httpx>=0.24",
        "eth-account>=0.10",
        "eth-abi>=4.0",
        "eth-utils>=2.0",
    ],
    extras_require={"dev": ["pytest>=7.0", "pytest-asyncio>=0.21"]},
    entry_points={"console_scripts": ["kya=kya.cli:main"]},
    python_requires=">=3.10",
    license="MIT",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Security :: Cryptography",
        "Framework :: FastAPI",
        "Programming Language :: Python :: 3",
    ],
    keywords="agent reputation commitment hmac ecdsa evm oracle",
)

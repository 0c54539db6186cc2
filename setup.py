from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="manga-ocr-pipeline",
    version="1.0.0",
    author="Your Organization",
    author_email="your.email@example.com",
    description="Manga page OCR with quality-adaptive parameters, reading order and parallel batches",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/manga-ocr-pipeline",
    packages=find_packages(include=["manga_ocr_pipeline", "manga_ocr_pipeline.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering :: Image Recognition",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ],
    },
    include_package_data=True,
    package_data={
        "manga_ocr_pipeline": ["config.yaml"],
    },
)

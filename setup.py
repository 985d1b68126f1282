from setuptools import find_namespace_packages, setup

setup(
    name="pkgscout",
    version="0.1.0",
    description="Measure the bundled size of npm packages fetched straight from a CDN",
    python_requires=">=3.12",
    packages=find_namespace_packages(include=["pkgscout", "pkgscout.*"]),
    install_requires=[
        "calmjs.parse>=1.3",
        "click>=8.1",
        "httpx>=0.27",
        "result>=0.17",
        "rich>=13.7",
        "rjsmin>=1.2",
    ],
    extras_require={
        "test": ["pytest>=8"],
    },
    entry_points={
        "console_scripts": ["pkgscout=pkgscout.cli:main"],
    },
)

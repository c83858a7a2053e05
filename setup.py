"""CPU usage check reporting the top CPU-consuming processes."""

from setuptools import setup

test_deps = [
    "pytest>=3",
    "pytest-mock",
]

setup(
    name="fc.cpuprofiler",
    version="1.0",
    description=__doc__,
    url="https://github.com/flyingcircusio/fc-nixos",
    author="Flying Circus Internet Operations GmbH",
    author_email="mail@flyingcircus.io",
    license="ZPL",
    classifiers=[
        "Environment :: Console",
        "License :: OSI Approved :: Zope Public License",
        "Programming Language :: Python :: 3.10",
        "Topic :: System :: Monitoring",
    ],
    packages=["fc.cpuprofiler"],
    install_requires=["psutil"],
    zip_safe=False,
    tests_require=test_deps,
    extras_require={"test": test_deps},
    entry_points={
        "console_scripts": [
            "check_cpu_process_profiler=fc.cpuprofiler.check:main",
        ],
    },
)

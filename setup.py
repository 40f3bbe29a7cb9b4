from setuptools import find_packages, setup

setup(
    name="vibes",
    version="0.1.0",
    description="VibeScript compiler front end and language server",
    packages=find_packages(include=["vibes", "vibes.*"]),
    python_requires=">=3.9",
    install_requires=[],
    extras_require={
        # The suite is plain unittest; pytest is only a convenient runner
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "vibes=vibes.cli:main",
            "vibes-lsp=vibes.lsp.server:main",
        ],
    },
)

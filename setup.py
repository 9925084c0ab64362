"""Packaging for agent-bridge (src layout, console script `agent-bridge`)."""

from setuptools import find_packages, setup

setup(
    name="agent-bridge",
    version="0.1.0",
    description="Peer messaging, shared rooms and context documents over a local directory, served as MCP tools",
    python_requires=">=3.11",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "click>=8.1",
        "rich>=13.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "agent-bridge=agent_bridge.cli:main",
        ],
    },
)

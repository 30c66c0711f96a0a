from setuptools import find_packages, setup

setup(
    name="build-monitor",
    version="0.1.0",
    packages=find_packages(
        include=[
            "monitor_common",
            "monitor_common.*",
            "monitor_persistence",
            "monitor_persistence.*",
            "monitor_clients",
            "monitor_clients.*",
            "monitor_poller",
            "monitor_poller.*",
            "monitor_server",
            "monitor_server.*",
            "monitor_admin",
            "monitor_admin.*",
        ]
    ),
    install_requires=[
        "requests>=2.31.0",
        "fastapi>=0.104.0",
        "uvicorn>=0.24.0",
        "aiosqlite>=0.19.0",
        "click>=8.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-xdist>=3.3.0",
            "httpx>=0.25.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "build-monitor=monitor_poller.__main__:main",
            "monitor-admin=monitor_admin.cli:cli",
        ],
    },
    python_requires=">=3.11",
)

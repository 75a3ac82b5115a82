# setup.py
from setuptools import setup

setup(
    name="FunFishing",
    version="0.2.0",
    python_requires=">=3.9",
    py_modules=["server", "client"],
    packages=["common", "engine", "game"],
    install_requires=[
        "panda3d>=1.10.13",
        "panda3d-gltf>=1.0",
        "panda3d-simplepbr>=0.12",
        "websockets>=13.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "funfishing-server=server:main",
            "funfishing-client=client:main",
        ],
    },
    options = {
        "build_apps": {
            "gui_apps":     {"Client": "client.py"},
            "console_apps": {"Server": "server.py"},
            "include_patterns": ["common/**","engine/**","game/**","configs/**","models/**"],
            "exclude_patterns": ["**/__pycache__/**","**/*.pyc"],
            "plugins": ["pandagl","p3openal_audio"],
            "platforms": ["manylinux2014_x86_64","win_amd64","macosx_11_0_arm64"],
            "log_filename": None,
        }
    }
)

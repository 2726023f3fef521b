from setuptools import setup

# Flat multi-module distribution.
# Users can 'pip install .' and get a console entry point 'globe-arcs'.

setup(
    name="globe_arcs",
    version="0.1.0",
    description="Weighted great-circle arcs on an interactive 3D globe (desktop OpenGL or browser)",
    long_description="""Reads a JSON list of paired locations with a weight, builds curved arcs that
rise above the globe in proportion to their length, colours them through a look-up table and
shows them on an interactive PyQt5 + PyOpenGL globe, or exports a standalone three.js page.
Grid and border overlays are loaded from model files with trimesh.""",
    long_description_content_type="text/plain",
    author="Your Name",
    py_modules=[
        "globe_arcs",
        "globe_colors",
        "globe_data",
        "globe_geometry",
        "globe_html",
        "globe_view",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "PyQt5",
        "PyOpenGL",
        "requests",
        "trimesh",
        "matplotlib",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "globe-arcs = globe_arcs:main",
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering :: Visualization",
        "Topic :: Scientific/Engineering :: GIS",
    ],
)

from pathlib import Path
from setuptools import setup, find_packages

PROJECT_ROOT = Path(__file__).parent.resolve()
TEMPLATES_DIR = PROJECT_ROOT / "helm_overlays" / "templates"

template_files = []
if TEMPLATES_DIR.exists():
    for path in sorted(TEMPLATES_DIR.rglob("*")):
        if path.is_file():
            template_files.append(str(path.relative_to(TEMPLATES_DIR.parent)))

setup(
    name="helm-overlays",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={"helm_overlays": template_files},
    python_requires=">=3.10",
    install_requires=[
        "cli-core-yo>=1.0,<1.1",
        "jinja2>=3.0",
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "rich>=14.0",
        "typer>=0.21",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "helm-overlays=helm_overlays.cli:main",
        ],
    },
)

from importlib import metadata
from pathlib import Path

here = Path(__file__).parent
version_file = here.parent / "VERSION.txt"
if version_file.exists():
    with open(version_file, "r") as vf:
        __version__ = vf.read().strip()
else:
    __version__ = metadata.version("gradeflow")

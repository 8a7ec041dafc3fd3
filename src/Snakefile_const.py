import os
import pathlib

pwd = pathlib.Path(os.getcwd())
proj_dir = pwd.parents[0]

DATA = proj_dir / "data"
END = DATA / "processed"
INT = DATA / "interim"

CONFIG = proj_dir / "configs"

LOG = INT / "logs"

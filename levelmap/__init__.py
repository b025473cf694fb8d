# LevelMap: floor level grid, ruler reading and tolerance analysis

__version__ = "0.1.0"

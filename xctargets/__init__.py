from xctargets.config import Config, HostApp

__version__ = "0.3.0"

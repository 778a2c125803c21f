__version__ = "1.0.0"
__author__ = "MyNest"
__description__ = "Media resource sniffer for the MyNest download manager"

"""depfetch - 锁定依赖包拉取与检出"""

__version__ = "0.3.0"

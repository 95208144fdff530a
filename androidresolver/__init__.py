"""androidresolver - Android 依赖解析、拉取与 AAR 后处理"""

__version__ = "1.1.0"

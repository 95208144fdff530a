"""核心：依赖合并、产物拉取、explode 缓存、AAR 处理、冲突检测"""

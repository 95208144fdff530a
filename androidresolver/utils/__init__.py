"""通用工具：日志、YAML 读写、子进程执行、文件操作"""

"""外部构建工具 (Gradle) 调用与输出解析"""

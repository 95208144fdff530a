"""服务层: 编排核心组件完成完整解析"""

"""统一异常体系

所有业务异常继承 ResolverError。CLI 层据此输出友好提示，
编排层据此把配置类致命错误转换为"全部依赖缺失"。
"""

from __future__ import annotations


class ResolverError(Exception):
    """解析器基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(ResolverError):
    """配置缺失或无效（如 Android SDK 路径不存在）"""

    code = "CONFIG_ERROR"


class ArtifactProcessingError(ResolverError):
    """单个产物解包 / 处理失败"""

    code = "ARTIFACT_PROCESSING_ERROR"

    def __init__(self, message: str, artifact: str = "") -> None:
        super().__init__(message)
        self.artifact = artifact


class DependencyError(ResolverError):
    """依赖声明格式错误"""

    code = "DEPENDENCY_ERROR"


class ValidationError(ResolverError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []

"""领域协议定义

集中定义核心与宿主环境之间的接口契约（Protocol）。
核心只依赖这些抽象：读取构建环境状态、标记受管产物、安装 SDK 组件。

使用 typing.Protocol 而非 ABC，使得宿主侧的类无需修改继承关系即可满足协议。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable, Protocol

if TYPE_CHECKING:
    from androidresolver.core.environment import EnvironmentSnapshot

# 进度回调：(0..1 进度, 当前处理对象描述)
ProgressCallback = Callable[[float, str], None]


# =========================================================================
# 构建环境协议
# =========================================================================

class BuildEnvironment(Protocol):
    """宿主构建环境能力接口

    核心从不按名称反射查询宿主平台，只通过此接口读取类型化的值。
    """

    def snapshot(self) -> EnvironmentSnapshot:
        """获取当前环境状态的不可变快照"""
        ...

    @property
    def sdk_root(self) -> str:
        """Android SDK 根目录，未配置时为空串"""
        ...

    @property
    def use_jetifier(self) -> bool:
        """是否已启用 Jetifier（AndroidX 兼容转换）"""
        ...

    def enable_jetifier(self) -> bool:
        """尝试启用 Jetifier，宿主无法支持时返回 False"""
        ...

    @property
    def supports_aar_files(self) -> bool:
        """宿主是否能直接使用 AAR 归档"""
        ...

    @property
    def android_gradle_plugin_version(self) -> str:
        """宿主使用的 Android Gradle 插件版本，未知时为空串"""
        ...


# =========================================================================
# 受管产物标记协议
# =========================================================================

class AssetTracker(Protocol):
    """受管产物的标记 / 查询

    受管产物是由解析器拷贝或生成、并由解析器负责清理的文件或目录。
    """

    def find_labeled(self) -> list[str]:
        """返回全部受管产物路径"""
        ...

    def label(self, paths: Iterable[str]) -> None:
        """将路径标记为受管"""
        ...

    def unlabel(self, paths: Iterable[str]) -> None:
        """取消标记"""
        ...

    def delete_labeled(self) -> list[str]:
        """删除全部受管产物，返回删除失败信息"""
        ...


# =========================================================================
# SDK 组件安装协议
# =========================================================================

class SdkPackageInstaller(Protocol):
    """Android SDK 组件安装接口（安装 UI 与实现均在宿主侧）"""

    def install(
        self, package_ids: list[str], on_complete: Callable[[bool], None],
    ) -> None:
        """安装指定组件，完成后回调是否成功"""
        ...

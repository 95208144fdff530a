"""构建环境快照与静态实现

EnvironmentSnapshot 是一次比较所用的不可变环境值，
explode 缓存的脏检查只和快照比较，不读取全局状态。
StaticEnvironment 从配置文件的 environment 段构造，供 CLI 和测试使用。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from androidresolver.core.abis import AbiSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """影响 AAR 处理结果的环境值"""

    application_id: str = ""
    target_abis: AbiSet = field(default_factory=AbiSet)
    gradle_build_enabled: bool = True
    gradle_export_enabled: bool = False
    gradle_template_enabled: bool = False

    @property
    def generates_project(self) -> bool:
        """explode 后是否生成展开工程（否则重新打包为 AAR）"""
        return not self.gradle_build_enabled


class StaticEnvironment:
    """由固定值构成的 BuildEnvironment 实现"""

    def __init__(
        self,
        snapshot: EnvironmentSnapshot | None = None,
        *,
        sdk_root: str = "",
        use_jetifier: bool = False,
        jetifier_supported: bool = True,
        supports_aar_files: bool = True,
        android_gradle_plugin_version: str = "",
    ) -> None:
        self._snapshot = snapshot or EnvironmentSnapshot()
        self._sdk_root = sdk_root
        self._use_jetifier = use_jetifier
        self._jetifier_supported = jetifier_supported
        self._supports_aar_files = supports_aar_files
        self._plugin_version = android_gradle_plugin_version

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StaticEnvironment:
        """从配置字典构造

        键: application_id, target_abis, gradle_build_enabled, gradle_export_enabled,
        gradle_template_enabled, sdk_root, use_jetifier, jetifier_supported,
        supports_aar_files, android_gradle_plugin_version
        """
        abis = data.get("target_abis", "")
        if isinstance(abis, (list, tuple)):
            target = AbiSet(abis)
        else:
            target = AbiSet.parse(str(abis))
        snapshot = EnvironmentSnapshot(
            application_id=str(data.get("application_id", "")),
            target_abis=target,
            gradle_build_enabled=bool(data.get("gradle_build_enabled", True)),
            gradle_export_enabled=bool(data.get("gradle_export_enabled", False)),
            gradle_template_enabled=bool(data.get("gradle_template_enabled", False)),
        )
        return cls(
            snapshot,
            sdk_root=str(data.get("sdk_root", "")),
            use_jetifier=bool(data.get("use_jetifier", False)),
            jetifier_supported=bool(data.get("jetifier_supported", True)),
            supports_aar_files=bool(data.get("supports_aar_files", True)),
            android_gradle_plugin_version=str(
                data.get("android_gradle_plugin_version", "")),
        )

    def snapshot(self) -> EnvironmentSnapshot:
        return self._snapshot

    def update(self, **changes: Any) -> None:
        """修改快照字段（模拟宿主设置变更）"""
        self._snapshot = replace(self._snapshot, **changes)

    @property
    def sdk_root(self) -> str:
        return self._sdk_root

    @property
    def use_jetifier(self) -> bool:
        return self._use_jetifier

    def enable_jetifier(self) -> bool:
        if not self._jetifier_supported:
            logger.warning("当前宿主环境不支持 Jetifier")
            return False
        self._use_jetifier = True
        return True

    @property
    def supports_aar_files(self) -> bool:
        return self._supports_aar_files

    @property
    def android_gradle_plugin_version(self) -> str:
        return self._plugin_version

"""归档处理器: 解包 / 变量替换 / ABI 裁剪 / 重新打包

处理流程（始终在隔离的临时目录中进行，任何退出路径都会清理）:
  1. 完整解包归档到 staging/<name>
  2. 替换 AndroidManifest.xml 中的 ${applicationId} 等变量
  3. 展开工程模式: 创建 libs/，把 classes.jar 移入（不存在则生成空 jar），
     jni/ 下的原生库合并进 libs/
  4. 删除不在当前目标 ABI 集合中的原生库目录
  5. 展开工程模式: 写 project.properties，删除原归档，移动到 <dest>/<name>
     重新打包模式: 删除原归档，在原路径重新压缩
"""

from __future__ import annotations

import logging
import os
import zipfile
from pathlib import Path
from typing import Iterable

from androidresolver.core.abis import AbiSet
from androidresolver.core.environment import EnvironmentSnapshot
from androidresolver.core.exceptions import ArtifactProcessingError
from androidresolver.core.protocols import AssetTracker
from androidresolver.utils.fileutils import (
    delete_existing,
    format_error,
    merge_directory,
    move_directory,
    posix_path,
    temporary_directory,
)

logger = logging.getLogger(__name__)

MANIFEST_FILE = "AndroidManifest.xml"
CLASSES_JAR = "classes.jar"
PROJECT_PROPERTIES = "project.properties"
APPLICATION_ID_VARIABLE = "${applicationId}"

LIBS_DIR = "libs"
JNI_DIR = "jni"

PROJECT_PROPERTIES_LINES = (
    "# Project target.",
    "target=android-9",
    "android.library=true",
)


# =========================================================================
# ZIP 工具
# =========================================================================

def _is_safe_member(name: str) -> bool:
    parts = posix_path(name).split("/")
    return not name.startswith(("/", "\\")) and ".." not in parts and ":" not in parts[0]


def extract_zip(
    archive: str | Path, dest: str | Path, members: Iterable[str] | None = None,
) -> None:
    """解包归档，members 为需要的文件名或目录名（None 表示全部）

    越界路径（绝对路径、..）的条目被忽略。
    """
    wanted = [m.rstrip("/") for m in members] if members is not None else None
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            name = info.filename
            if not _is_safe_member(name):
                logger.warning("忽略越界的归档条目: %s (%s)", name, archive)
                continue
            if wanted is not None and not any(
                    name == m or name.startswith(m + "/") for m in wanted):
                continue
            zf.extract(info, dest)


def create_zip(path: str | Path, source_dir: str | Path) -> None:
    """把 source_dir 的内容压缩为 path（条目路径相对 source_dir）"""
    source = Path(source_dir)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for root, dirs, files in os.walk(source):
            dirs.sort()
            for name in sorted(files):
                full = Path(root) / name
                zf.write(full, posix_path(full.relative_to(source)))


def replace_manifest_variables(
    manifest: str | Path, application_id: str, variables: dict[str, str] | None = None,
) -> bool:
    """替换清单中的 ${applicationId} 及自定义 ${name} 变量，返回是否有修改"""
    path = Path(manifest)
    if not path.is_file():
        return False
    original = path.read_text(encoding="utf-8")
    text = original.replace(APPLICATION_ID_VARIABLE, application_id)
    for name, value in (variables or {}).items():
        text = text.replace("${" + name + "}", value)
    if text == original:
        return False
    path.write_text(text, encoding="utf-8")
    return True


# =========================================================================
# 处理器
# =========================================================================

class ArchiveProcessor:
    """处理单个 AAR / JAR 产物"""

    def __init__(self, tracker: AssetTracker) -> None:
        self._tracker = tracker

    def process(
        self,
        artifact: str,
        dest_dir: str,
        snapshot: EnvironmentSnapshot,
        *,
        generate_project: bool,
        variables: dict[str, str] | None = None,
    ) -> AbiSet:
        """处理产物，返回归档中原有的 ABI 集合

        失败抛 ArtifactProcessingError；临时目录总会被删除。
        """
        logger.debug("处理 %s -> %s (展开工程=%s)", artifact, dest_dir, generate_project)
        name = Path(artifact).stem
        output_dir = Path(dest_dir) / name
        try:
            with temporary_directory(prefix="androidresolver-aar-") as staging:
                working_dir = staging / name
                working_dir.mkdir(parents=True)
                extract_zip(artifact, working_dir)
                replace_manifest_variables(
                    working_dir / MANIFEST_FILE, snapshot.application_id, variables,
                )

                native_libs_dir = working_dir / JNI_DIR
                if generate_project:
                    native_libs_dir = working_dir / LIBS_DIR
                    self._relocate_classes(working_dir, staging)

                abis = self._strip_unused_abis(
                    artifact, working_dir, native_libs_dir, snapshot.target_abis,
                )

                if generate_project:
                    self._finalize_project(artifact, working_dir, output_dir)
                else:
                    self._finalize_repack(artifact, working_dir)
        except ArtifactProcessingError:
            raise
        except Exception as e:
            # 包括清单编码错误、加密或不支持压缩方式的条目
            raise ArtifactProcessingError(f"处理失败: {artifact} ({e})", artifact) from e
        return abis

    @staticmethod
    def _relocate_classes(working_dir: Path, staging: Path) -> None:
        libs_dir = working_dir / LIBS_DIR
        libs_dir.mkdir(exist_ok=True)
        classes = working_dir / CLASSES_JAR
        target = libs_dir / CLASSES_JAR
        if target.exists():
            target.unlink()
        if classes.is_file():
            classes.replace(target)
            return
        # 部分发布的 AAR 缺少 classes.jar，生成空 jar 保证构建可用
        empty_dir = staging / "empty_classes_jar"
        empty_dir.mkdir(exist_ok=True)
        create_zip(target, empty_dir)

    @staticmethod
    def _strip_unused_abis(
        artifact: str, working_dir: Path, native_libs_dir: Path, target: AbiSet,
    ) -> AbiSet:
        jni_dir = working_dir / JNI_DIR
        if not jni_dir.is_dir():
            return AbiSet.universal()
        abis = AbiSet.find_in_directory(working_dir)
        if jni_dir != native_libs_dir:
            merge_directory(jni_dir, native_libs_dir)
            error = format_error(
                f"无法删除 {artifact} 中的 jni 目录", delete_existing(jni_dir),
            )
            if error:
                raise ArtifactProcessingError(error, artifact)
        if abis.is_universal or target.is_universal:
            return abis

        to_remove = abis.difference(target)
        logger.debug(
            "目标 ABI [%s]，%s 中的 ABI [%s]，将删除 [%s]",
            target, artifact, abis, ", ".join(sorted(to_remove)),
        )
        for abi in sorted(to_remove):
            error = format_error(
                f"无法删除 {artifact} 中未使用的 ABI", delete_existing(native_libs_dir / abi),
            )
            if error:
                logger.warning(error)
        return abis

    def _finalize_project(self, artifact: str, working_dir: Path, output_dir: Path) -> None:
        properties = working_dir / PROJECT_PROPERTIES
        if not properties.exists():
            properties.write_text("\n".join(PROJECT_PROPERTIES_LINES) + "\n", encoding="utf-8")
        logger.debug("生成展开工程: %s -> %s", artifact, output_dir)
        error = format_error(
            f"生成展开工程 {output_dir} 后无法删除原归档 {artifact}",
            delete_existing(artifact),
        )
        if error:
            raise ArtifactProcessingError(error, artifact)
        move_directory(working_dir, output_dir)
        self._tracker.label([posix_path(output_dir)])

    def _finalize_repack(self, artifact: str, working_dir: Path) -> None:
        logger.debug("重新打包 %s", artifact)
        error = format_error(f"无法替换归档 {artifact}", delete_existing(artifact))
        if error:
            raise ArtifactProcessingError(error, artifact)
        create_zip(artifact, working_dir)
        self._tracker.label([posix_path(artifact)])

"""构建工具参数 / 属性文件生成

同一组属性既写入 gradle.properties，也作为 -P 参数传给命令行。
"""

from __future__ import annotations

from androidresolver.core.dep.merger import escape_property_value

GRADLE_PROPERTIES_FILE = "gradle.properties"


def generate_properties(properties: dict[str, str]) -> str:
    """生成 Java properties 格式文本（值中不能包含换行）

    键中的空格转义；值的前导空格转义，其余部分转义全部特殊字符。
    """
    lines = []
    for key, value in properties.items():
        escaped_key = key.replace(" ", "\\ ")
        stripped = value.lstrip(" ")
        leading = value[:len(value) - len(stripped)]
        escaped_value = leading.replace(" ", "\\ ") + escape_property_value(stripped)
        lines.append(f"{escaped_key}={escaped_value}")
    return "\n".join(lines)


def build_arguments(
    build_script: str, properties: dict[str, str], *, use_daemon: bool = False,
) -> list[str]:
    """构造构建工具命令行参数（不含可执行文件本身）"""
    args = ["-b", build_script, "--daemon" if use_daemon else "--no-daemon"]
    args.extend(f"-P{key}={value}" for key, value in properties.items())
    return args

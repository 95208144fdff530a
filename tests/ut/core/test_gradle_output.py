"""构建工具输出解析与属性生成测试"""

from androidresolver.core.gradle.output import parse_tool_output
from androidresolver.core.gradle.properties import build_arguments, generate_properties


class TestParseToolOutput:
    def test_sections(self) -> None:
        out = "Copied artifacts:\nlibs/a.aar\n\nMissing artifacts:\ngroup:artifact:1.0\n"
        report = parse_tool_output(out, "/dest")
        assert report.copied == ["/dest/libs/a.aar"]
        assert report.missing == ["group:artifact:1.0"]
        assert report.modified == []

    def test_header_switches_section(self) -> None:
        out = (
            "> Task :copyPackages\n"
            "Copied artifacts:\n"
            "a.aar\n"
            "b.jar\n"
            "Modified artifacts:\n"
            "g:a:1.0 --> g:a:2.0\n"
        )
        report = parse_tool_output(out, "/dest")
        assert report.copied == ["/dest/a.aar", "/dest/b.jar"]
        assert report.modified == ["g:a:1.0 --> g:a:2.0"]

    def test_lines_outside_section_ignored(self) -> None:
        report = parse_tool_output("BUILD SUCCESSFUL\nfoo.aar\n", "/dest")
        assert report.copied == report.missing == report.modified == []

    def test_backslashes_normalized(self) -> None:
        report = parse_tool_output("Copied artifacts:\r\nsub\\a.aar\r\n", "C:\\dest")
        assert report.copied == ["C:/dest/sub/a.aar"]

    def test_blank_line_ends_section(self) -> None:
        report = parse_tool_output("Missing artifacts:\ng:a:1\n\ng:b:1\n", "/d")
        assert report.missing == ["g:a:1"]

    def test_empty_output(self) -> None:
        report = parse_tool_output("", "/dest")
        assert report.copied == []


class TestProperties:
    def test_generate_escapes(self) -> None:
        text = generate_properties({
            "TARGET_DIR": "/my project/libs",
            "MAVEN_REPOS": "https://a;file:///b",
            "LEAD": "  x y",
        })
        assert text.splitlines() == [
            "TARGET_DIR=/my\\ project/libs",
            "MAVEN_REPOS=https\\://a;file\\:///b",
            "LEAD=\\ \\ x\\ y",
        ]

    def test_key_spaces_escaped(self) -> None:
        assert generate_properties({"A B": "1"}) == "A\\ B=1"

    def test_build_arguments(self) -> None:
        args = build_arguments("download.gradle", {"A": "1", "B": "x y"})
        assert args == ["-b", "download.gradle", "--no-daemon", "-PA=1", "-PB=x y"]

    def test_build_arguments_daemon(self) -> None:
        assert "--daemon" in build_arguments("s.gradle", {}, use_daemon=True)

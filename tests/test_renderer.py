"""Tests for rendering the unified document."""

import pytest

from project_unifier import (
    DEFAULT_PACKAGE,
    OTHER_FILES,
    BannerFormatter,
    BufferLeafEntry,
    CommentOption,
    CommentRemover,
    TreeWalker,
    UnificationRenderer,
    VirtualContainerEntry,
    estimate_tokens,
    group_files,
    suggest_file_name,
)
from tests.conftest import make_file, make_project


@pytest.fixture
def renderer():
    return UnificationRenderer()


class TestOrdering:
    """Deterministic group and file order."""

    def test_default_first_other_last(self, renderer):
        """Test that groups are default, then alphabetical, then other files."""
        project = make_project("P", [
            make_file("Z.java", "class Z {}", "com.b"),
            make_file("A.java", "class A {}", "com.b"),
            make_file("M.java", "class M {}", "com.a"),
            make_file("Root.java", "class Root {}", DEFAULT_PACKAGE),
            make_file("pom.xml", "<project/>", OTHER_FILES, file_type="pom"),
        ])

        output = renderer.render([project], multi_project_mode=True)

        positions = [output.index(f"FILE ({t}): {n}") for t, n in [
            ("JAVA", "Root.java"), ("JAVA", "M.java"), ("JAVA", "A.java"),
            ("JAVA", "Z.java"), ("POM", "pom.xml"),
        ]]
        assert positions == sorted(positions)
        assert output.index("// PACKAGE: (Default Package)") < output.index("// PACKAGE: com.a")
        assert output.index("// PACKAGE: com.b") < output.index(f"// GROUP: {OTHER_FILES}")

    def test_group_files_sorts_ties_by_path(self):
        files = [
            make_file("Util.java", relative_path="b/Util.java", group_key="g"),
            make_file("Util.java", relative_path="a/Util.java", group_key="g"),
        ]
        [(key, ordered)] = group_files(files)
        assert key == "g"
        assert [f.relative_path for f in ordered] == ["a/Util.java", "b/Util.java"]

    def test_only_selected_files(self, renderer):
        project = make_project("P", [
            make_file("A.java", "class A {}"),
            make_file("B.java", "class B {}", selected=False),
        ])
        output = renderer.render([project], True)
        assert "class A {}" in output
        assert "class B {}" not in output


class TestBanners:
    """Banner layout and comment options."""

    def test_java_round_trip(self, java_profile):
        """Test a single Java file walked and rendered with default banners."""
        walker = TreeWalker(java_profile)
        result = walker.walk([
            VirtualContainerEntry.from_files("Demo", {"X.java": b"package com.acme;\nclass X{}\n"})
        ])

        output = UnificationRenderer().render(result.projects, True, CommentOption.DEFAULT)

        lines = output.split("\n")
        assert lines[:3] == ["//" + "#" * 60, "// PROJECT: Demo", "//" + "#" * 60]
        assert "// PACKAGE: com.acme" in lines
        assert "// FILE (JAVA): X.java" in lines
        assert "// PATH: Demo/X.java" in lines
        assert output.endswith("package com.acme;\nclass X{}")

    def test_single_project_mode_omits_later_project_banners(self, renderer):
        first = make_project("One", [make_file("A.java", "class A {}")])
        second = make_project("Two", [make_file("B.java", "class B {}")])

        output = renderer.render([first, second], multi_project_mode=False)

        assert output.count("// PROJECT:") == 1
        assert "// PROJECT: One" in output

    def test_multi_project_mode_separates_projects(self, renderer):
        first = make_project("One", [make_file("A.java", "class A {}")])
        empty = make_project("Empty", [make_file("E.java", "class E {}", selected=False)])
        second = make_project("Two", [make_file("B.java", "class B {}")])

        output = renderer.render([first, empty, second], multi_project_mode=True)

        assert output.count("// PROJECT:") == 2
        assert "Empty" not in output
        assert "class A {}\n\n\n//" in output

    def test_no_app_comments(self, renderer):
        project = make_project("P", [
            make_file("A.java", "  class A {}  \n"),
            make_file("B.java", "class B {}"),
        ])
        output = renderer.render([project], True, "noAppComments")
        assert output == "class A {}\n\nclass B {}"

    def test_remove_all_comments(self, web_profile):
        """Test stripping markup and script comments without banners."""
        project = make_project("Site", [
            make_file("index.html", "<p>Hi</p>\n<!-- hi -->\n<div></div>", "src", "html"),
            make_file("app.js", "const a = 1; // hi\n/* bye */\nlet b = 2;", "src", "js"),
        ])

        output = UnificationRenderer().render([project], True, CommentOption.REMOVE_ALL_COMMENTS)

        assert "<!--" not in output
        assert "// hi" not in output
        assert "/* bye */" not in output
        assert "// PROJECT" not in output
        assert "const a = 1;" in output
        assert "let b = 2;" in output
        assert "<p>Hi</p>\n<div></div>" in output

    def test_remove_past_app_comments_is_idempotent(self, java_profile):
        """Test that re-unifying an earlier output keeps a single set of banners."""
        project = make_project("Demo", [make_file("X.java", "package com.acme;\nclass X{}", "com.acme")])
        renderer = UnificationRenderer()
        first = renderer.render([project], True)

        walker = TreeWalker(java_profile)
        result = walker.walk([BufferLeafEntry("Demo_unified.txt", first.encode("utf-8"))])
        for f in result.projects[0].files:
            f.selected = True
        second = renderer.render(result.projects, True, CommentOption.REMOVE_PAST_APP_COMMENTS)

        assert second.count("// PROJECT:") == 1
        assert "// PACKAGE: com.acme" not in second
        assert "// FILE (TXT): Demo_unified.txt" in second
        assert "class X{}" in second
        assert "\n\n\n" not in second

    def test_empty_input(self, renderer):
        assert renderer.render([], True) == ""
        assert renderer.render(None, True) == ""
        nothing = make_project("P", [make_file("A.java", "x", selected=False)])
        assert renderer.render([nothing], True) == ""

    @pytest.mark.parametrize(
        "key,label",
        [
            ("com.acme", "PACKAGE"),
            (DEFAULT_PACKAGE, "PACKAGE"),
            ("src/components", "DIRECTORY"),
            ("src", "GROUP"),
            (OTHER_FILES, "GROUP"),
        ],
    )
    def test_group_labels(self, key, label):
        assert BannerFormatter().group_label(key) == label


class TestCommentRemover:
    """Comment stripping per file type."""

    @pytest.fixture
    def remover(self):
        return CommentRemover()

    def test_strings_are_preserved(self, remover):
        content = 'String url = "http://example.com"; // link\nint x = 1;'
        assert remover.remove(content, "java") == 'String url = "http://example.com";\nint x = 1;'

    def test_hash_comments(self, remover):
        content = "# header\nname: demo  # inline\ncolor: \"#fff\""
        assert remover.remove(content, "yaml") == 'name: demo\ncolor: "#fff"'

    def test_sql_comments(self, remover):
        content = "-- drop\nSELECT 1; /* note */\nSELECT '--x';"
        assert remover.remove(content, "sql") == "SELECT 1;\nSELECT '--x';"

    def test_css_keeps_double_slash(self, remover):
        content = "/* theme */\na { background: url(//cdn/x.png); }"
        assert remover.remove(content, "css") == "a { background: url(//cdn/x.png); }"

    def test_author_blank_lines_kept(self, remover):
        content = "int a = 1;\n\n// gone\nint b = 2;"
        assert remover.remove(content, "java") == "int a = 1;\n\nint b = 2;"

    def test_unknown_type_untouched(self, remover):
        assert remover.remove("// keep", "md") == "// keep"

    def test_markup_keeps_urls(self, remover):
        """Test that URLs in element text survive markup comment removal."""
        pom = "<project>\n  <!-- c -->\n  <url>https://maven.apache.org</url>\n</project>"
        assert remover.remove(pom, "pom") == "<project>\n  <url>https://maven.apache.org</url>\n</project>"

        html = "<p>See http://example.com</p>\n<!-- note -->"
        assert remover.remove(html, "html") == "<p>See http://example.com</p>"

    def test_markup_script_and_style_bodies(self, remover):
        """Test that script and style bodies get their own comment rules."""
        html = (
            "<script>\n  let a = 1; // init\n</script>\n"
            "<style>\n  /* theme */\n  p { color: red; }\n</style>\n"
            "<p>a // b</p>"
        )
        assert remover.remove(html, "html") == (
            "<script>\n  let a = 1;\n</script>\n"
            "<style>\n  p { color: red; }\n</style>\n"
            "<p>a // b</p>"
        )


class TestBannerRemoval:
    """Stripping banners of earlier unifications."""

    @pytest.fixture
    def remover(self):
        return CommentRemover()

    def test_author_blank_runs_untouched(self, remover):
        assert remover.remove_banners("a\n\n\n\nb") == "a\n\n\n\nb"

    def test_blank_run_around_banner_collapses(self, remover):
        rule = "//" + "=" * 60
        content = f"{rule}\n// PACKAGE: x\n{rule}\n\n\nclass X {{}}\n\n\n\nclass Y {{}}"
        assert remover.remove_banners(content) == "\nclass X {}\n\n\n\nclass Y {}"

    def test_single_banner_line_between_blanks(self, remover):
        assert remover.remove_banners("a\n\n// PATH: x\n\nb") == "a\n\nb"


class TestNaming:
    """Suggested output names and token estimate."""

    def test_single_project_name(self):
        project = make_project("My Shop (2)", [make_file("A.java")])
        assert suggest_file_name([project]) == "My_Shop_unified.txt"

    def test_multi_project_name(self):
        projects = [make_project("A", [make_file("A.java")]), make_project("B", [make_file("B.java")])]
        assert suggest_file_name(projects) == "Unified_Projects_unified.txt"

    def test_only_contributing_projects_count(self):
        projects = [
            make_project("A", [make_file("A.java")]),
            make_project("B", [make_file("B.java", selected=False)]),
        ]
        assert suggest_file_name(projects) == "A_unified.txt"

    def test_estimate_tokens(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcde") == 2

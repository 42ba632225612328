from pathlib import Path
import textwrap

from modgraph.cli import main


def _write(root: Path, rel: str, source: str) -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source), encoding="utf-8")


def _make_project(root: Path) -> None:
    _write(
        root,
        "src/pages/Home.tsx",
        """
        import React from "react";
        import { Card } from "../components/Card";
        """,
    )
    _write(
        root,
        "src/pages/About.tsx",
        """
        import { Card } from "../components/Card";
        """,
    )
    _write(
        root,
        "src/components/Card.tsx",
        """
        import { Icon } from "./Icon";
        export const Card = () => Icon;
        """,
    )
    _write(root, "src/components/Icon.tsx", "export const Icon = 1;\n")


def test_cli_writes_project_graph(tmp_path: Path, capsys) -> None:
    _make_project(tmp_path)
    output = tmp_path / "out" / "deps.md"

    exit_code = main([str(tmp_path), "-o", str(output)])
    captured = capsys.readouterr()

    assert exit_code == 0
    assert "Wrote Mermaid to" in captured.out
    content = output.read_text(encoding="utf-8")
    assert content.startswith("```mermaid\ngraph TD\n")
    assert 'n1["components/Card"]' in content
    assert "react" not in content


def test_cli_prints_bare_mermaid_to_stdout(tmp_path: Path, capsys) -> None:
    _make_project(tmp_path)

    exit_code = main([str(tmp_path), "-o", "-", "--no-fence", "--include-external"])
    captured = capsys.readouterr()

    assert exit_code == 0
    lines = captured.out.splitlines()
    assert lines[0] == "graph TD"
    assert 'n5["react"]' in lines


def test_cli_dot_output(tmp_path: Path) -> None:
    _make_project(tmp_path)
    output = tmp_path / "graph.dot"

    exit_code = main([str(tmp_path), "--format", "dot", "-o", str(output)])

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert "digraph Dependencies" in content
    assert 'label="pages/Home"' in content


def test_cli_svg_uses_graphviz(tmp_path: Path, monkeypatch) -> None:
    """Cover the svg branch without requiring the dot binary."""
    _make_project(tmp_path)
    recorded = {}

    def fake_render_svg(dot: str) -> bytes:
        recorded["dot"] = dot
        return b"<svg/>"

    monkeypatch.setattr("modgraph.renderer.render_svg", fake_render_svg)

    code = main([str(tmp_path), "--format", "svg", "-o", str(tmp_path / "out.svg")])
    assert code == 0
    assert (tmp_path / "out.svg").read_bytes() == b"<svg/>"
    assert "digraph Dependencies" in recorded["dot"]


def test_cli_entry_mode_writes_one_file_per_entry(tmp_path: Path, capsys) -> None:
    _make_project(tmp_path)
    out_dir = tmp_path / "graphs"

    exit_code = main([str(tmp_path), "--entry", "src/pages/*.tsx", "-o", str(out_dir)])
    captured = capsys.readouterr()

    assert exit_code == 0
    assert "Wrote 2 entry graphs" in captured.out
    assert sorted(p.name for p in out_dir.iterdir()) == ["index.md", "pages__About.md", "pages__Home.md"]
    home = (out_dir / "pages__Home.md").read_text(encoding="utf-8")
    # transitive by default in entry mode
    assert '["components/Icon"]' in home


def test_cli_entry_mode_single_file(tmp_path: Path) -> None:
    _make_project(tmp_path)
    output = tmp_path / "screens.md"

    exit_code = main(
        [
            str(tmp_path),
            "--entry",
            "src/pages/*.tsx",
            "--output-target",
            "single-file",
            "--no-transitive",
            "-o",
            str(output),
        ]
    )

    assert exit_code == 0
    doc = output.read_text(encoding="utf-8")
    assert "## pages__About" in doc
    assert "## pages__Home" in doc
    assert '["components/Icon"]' not in doc

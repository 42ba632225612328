from pathlib import Path

import pytest

from modgraph.resolver import (
    ModuleSet,
    Resolved,
    ResolverConfig,
    SourceModule,
    Unresolved,
    match_globs,
    scan_project,
)


ROOT = Path("/proj")


def _set(*rels: str, **kwargs) -> ModuleSet:
    return ModuleSet(ROOT, [SourceModule(ROOT / rel) for rel in rels], **kwargs)


def test_relative_resolution_probes_extensions_and_index() -> None:
    ms = _set("src/a.ts", "src/b.tsx", "src/lib/index.ts", "src/lib/util.js")
    a = ms.get(ROOT / "src/a.ts")

    assert ms.resolve(a, "./b") == Resolved(ROOT / "src/b.tsx")
    assert ms.resolve(a, "./lib") == Resolved(ROOT / "src/lib/index.ts")
    assert ms.resolve(a, "./lib/util") == Resolved(ROOT / "src/lib/util.js")
    assert ms.resolve(a, "./lib/util.js") == Resolved(ROOT / "src/lib/util.js")
    assert ms.resolve(a, "./missing") == Unresolved("./missing")
    assert ms.resolve(a, "./b.css") == Unresolved("./b.css")


def test_js_extension_maps_to_typescript_source() -> None:
    ms = _set("src/a.ts", "src/b.ts")
    a = ms.get(ROOT / "src/a.ts")
    assert ms.resolve(a, "./b.js") == Resolved(ROOT / "src/b.ts")


def test_parent_relative_resolution() -> None:
    ms = _set("src/pages/Home.tsx", "src/components/Card.tsx")
    home = ms.get(ROOT / "src/pages/Home.tsx")
    assert ms.resolve(home, "../components/Card") == Resolved(ROOT / "src/components/Card.tsx")


def test_path_aliases() -> None:
    ms = _set(
        "src/pages/Home.tsx",
        "src/components/Card.tsx",
        aliases={"@/*": ["src/*"], "config": ["src/config/index.ts"]},
        base_url=".",
    )
    home = ms.get(ROOT / "src/pages/Home.tsx")
    assert ms.resolve(home, "@/components/Card") == Resolved(ROOT / "src/components/Card.tsx")
    assert ms.resolve(home, "config") == Unresolved("config")


def test_bare_specifier_is_unresolved_without_vendor_tree() -> None:
    ms = _set("src/a.ts")
    assert ms.resolve(ms.get(ROOT / "src/a.ts"), "react") == Unresolved("react")


def test_vendored_package_resolves_under_node_modules(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a.ts").write_text('import React from "react";\n', encoding="utf-8")
    (tmp_path / "node_modules" / "react").mkdir(parents=True)

    ms = scan_project(tmp_path)
    a = ms.get(tmp_path / "src" / "a.ts")
    result = ms.resolve(a, "react")
    assert isinstance(result, Resolved)
    assert result.path.parts[-2:] == ("node_modules", "react")


def test_scan_project_reads_tsconfig_paths_with_comments(tmp_path: Path) -> None:
    (tmp_path / "src" / "components").mkdir(parents=True)
    (tmp_path / "src" / "components" / "Card.tsx").write_text("export const Card = 1;\n", encoding="utf-8")
    (tmp_path / "src" / "main.tsx").write_text('import { Card } from "@/components/Card";\n', encoding="utf-8")
    (tmp_path / "tsconfig.json").write_text(
        """
        {
          // path aliases
          "compilerOptions": {
            "baseUrl": ".",
            "paths": { "@/*": ["src/*"], },
          },
        }
        """,
        encoding="utf-8",
    )

    ms = scan_project(tmp_path)
    main = ms.get(tmp_path / "src" / "main.tsx")
    assert ms.resolve(main, "@/components/Card") == Resolved(tmp_path / "src" / "components" / "Card.tsx")


def test_scan_project_ignores_broken_tsconfig(tmp_path: Path, caplog) -> None:
    (tmp_path / "a.ts").write_text("export {};\n", encoding="utf-8")
    (tmp_path / "tsconfig.json").write_text("{ not json", encoding="utf-8")

    with caplog.at_level("WARNING"):
        ms = scan_project(tmp_path)

    assert len(ms) == 1
    assert ms.aliases == {}
    assert "ignoring path aliases" in caplog.text


def test_scan_project_skips_declarations_and_vendor_dirs(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a.ts").write_text("export {};\n", encoding="utf-8")
    (tmp_path / "src" / "types.d.ts").write_text("export {};\n", encoding="utf-8")
    (tmp_path / "node_modules" / "x").mkdir(parents=True)
    (tmp_path / "node_modules" / "x" / "index.ts").write_text("export {};\n", encoding="utf-8")

    assert _relatives(scan_project(tmp_path)) == ["src/a.ts"]

    with_dts = scan_project(tmp_path, ResolverConfig(include_declaration_only=True))
    assert _relatives(with_dts) == ["src/a.ts", "src/types.d.ts"]


def test_scan_project_rejects_missing_root(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="does not exist"):
        scan_project(tmp_path / "nope")


def test_select_uses_globs_in_path_order() -> None:
    ms = _set("src/pages/b.tsx", "src/pages/a.tsx", "src/pages/_app.tsx", "src/pages/admin/x.tsx")
    picked = ms.select(["src/pages/*.tsx", "!src/pages/_app.*"])
    assert [ms.relative(m.path) for m in picked] == ["src/pages/a.tsx", "src/pages/b.tsx"]


@pytest.mark.parametrize(
    "path, globs, expected",
    [
        ("a.ts", ["**/*.{ts,tsx}"], True),
        ("src/deep/a.tsx", ["**/*.{ts,tsx}"], True),
        ("src/a.js", ["**/*.{ts,tsx}"], False),
        ("src/a.d.ts", ["**/*.ts", "!**/*.d.ts"], False),
        ("src/app/blog/page.tsx", ["src/app/**/page.{ts,tsx}"], True),
        ("src/app/page.tsx", ["src/app/**/page.{ts,tsx}"], True),
        ("app/backlog/sub/x.tsx", ["app/backlog/*.{ts,tsx}"], False),
        ("node_modules/x/a.ts", ["**/*.ts", "!node_modules/**"], False),
        ("src/a.ts", [], False),
        ("src/a.ts", ["!**/*.d.ts"], False),
        ("src/pages/[slug].tsx", ["src/pages/*.tsx"], True),
    ],
)
def test_match_globs(path, globs, expected) -> None:
    assert match_globs(path, globs) is expected


def _relatives(ms: ModuleSet):
    return [ms.relative(m.path) for m in ms]

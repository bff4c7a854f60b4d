# tests/test_tasks.py

from __future__ import annotations

import json
import sys
import time
from pathlib import Path

import pytest

from assetflow.actions import ActionContext, discover_collaborators
from assetflow.errors import CollaboratorError
from assetflow.tasks import run_command
from assetflow.tasks.files import clean, clean_scripts, copy_static
from assetflow.tasks.scripts import concat, minify, render_banner, script_sources
from assetflow.tasks.styles import autoprefix, compile_styles
from assetflow.tasks.templates import render_templates

from .fakes import COLLABORATORS


# Stand-in for the external tools: dumps its argv as json into the output path.
RECORD_ARGS = "import sys, json; open(sys.argv[-1], 'w').write(json.dumps(sys.argv[1:]))"


def write(path: Path, text: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture()
def project(params: dict) -> Path:
    root = Path(params["project"]["root"])
    write(root / "src" / "index.txt", "static")
    write(root / "src" / "img" / "logo.svg", "<svg/>")
    write(root / "src" / "less" / "style.less", "@c: red;")
    write(root / "src" / "views" / "index.jade", "p hi")
    write(root / "src" / "js" / "b.js", "var b;")
    write(root / "src" / "js" / "a.js", "var a;")
    return root


def test_every_composed_collaborator_has_an_adapter() -> None:
    table = discover_collaborators()
    assert set(COLLABORATORS) <= set(table)


def test_copy_skips_excluded_trees(params, project) -> None:
    copy_static(ActionContext(params))
    dist = project / "dist"
    assert (dist / "index.txt").read_text(encoding="utf-8") == "static"
    assert (dist / "img" / "logo.svg").exists()
    assert (dist / "js" / "a.js").exists()
    assert not (dist / "less").exists()
    assert not (dist / "views").exists()


def test_copy_without_sources_fails(params) -> None:
    with pytest.raises(FileNotFoundError):
        copy_static(ActionContext(params))


def test_clean_removes_output_tree(params, project) -> None:
    write(project / "dist" / "old.html")
    clean(ActionContext(params))
    assert not (project / "dist").exists()
    clean(ActionContext(params))


def test_clean_scripts_keeps_bundle(params, project) -> None:
    write(project / "dist" / "js" / "a.js")
    write(project / "dist" / "js" / "app.js", "bundle")
    clean_scripts(ActionContext(params))
    assert sorted(p.name for p in (project / "dist" / "js").iterdir()) == ["app.js"]


def test_script_sources_honour_declared_order(params, project) -> None:
    assert [p.name for p in script_sources(params)] == ["a.js", "b.js"]
    params["scripts"]["order"] = ["js/b.js"]
    assert [p.name for p in script_sources(params)] == ["b.js", "a.js"]


def test_script_sources_missing_ordered_file(params, project) -> None:
    params["scripts"]["order"] = ["js/missing.js"]
    with pytest.raises(FileNotFoundError):
        script_sources(params)


def test_concat_writes_readable_bundle(params, project) -> None:
    params["scripts"]["order"] = ["js/b.js"]
    concat(ActionContext(params))
    bundle = project / "dist" / "js" / "app.js"
    assert bundle.read_text(encoding="utf-8") == "var b;\nvar a;"


def test_banner_uses_project_name_and_date(params, project) -> None:
    write(project / "package.json", json.dumps({"name": "demo-site"}))
    banner = render_banner(params)
    assert banner == f"/*! demo-site {time.strftime('%d-%m-%Y')} */\n"


def test_minify_passes_sources_banner_and_bundle_path(params, project) -> None:
    params["project"]["name"] = "demo"
    params["scripts"]["command"] = [sys.executable, "-c", RECORD_ARGS]
    minify(ActionContext(params), mangle=False)
    args = json.loads((project / "dist" / "js" / "app.js").read_text(encoding="utf-8"))
    assert args[0].endswith("a.js") and args[1].endswith("b.js")
    assert "--mangle" not in args
    assert args[args.index("--preamble") + 1].startswith("/*! demo ")
    assert args[-1] == str(project / "dist" / "js" / "app.js")


def test_styles_compress_flag(params, project) -> None:
    params["styles"]["command"] = [sys.executable, "-c", RECORD_ARGS]
    out = project / "dist" / "css" / "style.css"

    compile_styles(ActionContext(params), compress=False)
    assert "--clean-css" not in json.loads(out.read_text(encoding="utf-8"))

    compile_styles(ActionContext(params), compress=True)
    assert "--clean-css" in json.loads(out.read_text(encoding="utf-8"))


def test_autoprefix_passes_browser_list(params, project) -> None:
    css = write(project / "dist" / "css" / "style.css", "a{}")
    params["autoprefix"]["command"] = [
        sys.executable,
        "-c",
        "import os, sys; open(sys.argv[1], 'w').write(os.environ['BROWSERSLIST'])",
    ]
    autoprefix(ActionContext(params))
    assert "Safari >= 6" in css.read_text(encoding="utf-8")


def test_autoprefix_without_css_is_a_no_op(params, project) -> None:
    params["autoprefix"]["command"] = [sys.executable, "-c", "raise SystemExit(1)"]
    autoprefix(ActionContext(params))


def test_templates_receive_render_locals(params, project) -> None:
    params["templates"]["command"] = [
        sys.executable,
        "-c",
        "import sys, json, pathlib; a = sys.argv[1:]; "
        "pathlib.Path(a[a.index('--out') + 1], 'args.json').write_text(json.dumps(a))",
    ]
    render_templates(ActionContext(params), pretty=True, debug=True)
    args = json.loads((project / "dist" / "args.json").read_text(encoding="utf-8"))
    assert json.loads(args[args.index("--obj") + 1]) == {"pretty": True, "debug": True}
    assert "--pretty" in args

    render_templates(ActionContext(params), pretty=False, debug=False)
    args = json.loads((project / "dist" / "args.json").read_text(encoding="utf-8"))
    assert json.loads(args[args.index("--obj") + 1]) == {"pretty": False, "debug": False}
    assert "--pretty" not in args


def test_templates_render_the_configured_directory(params, project) -> None:
    write(project / "src" / "pages" / "about.jade", "p about")
    params["templates"].update(
        dir="pages",
        ext=".htm",
        command=[
            sys.executable,
            "-c",
            "import sys, json, pathlib; a = sys.argv[1:]; "
            "pathlib.Path(a[a.index('--out') + 1], 'args.json').write_text(json.dumps(a))",
        ],
    )
    assert set(params["templates"]) == {"dir", "ext", "command"}

    render_templates(ActionContext(params), pretty=True, debug=True)
    args = json.loads((project / "dist" / "args.json").read_text(encoding="utf-8"))
    assert args[0] == str(project / "src" / "pages")
    assert args[args.index("--extension") + 1] == "htm"


def test_run_command_reports_exit_status() -> None:
    with pytest.raises(CollaboratorError) as exc:
        run_command([sys.executable, "-c", "import sys; sys.stderr.write('nope'); sys.exit(3)"])
    assert "exited with 3" in str(exc.value)
    assert "nope" in str(exc.value)


def test_run_command_missing_tool() -> None:
    with pytest.raises(CollaboratorError):
        run_command(["assetflow-no-such-tool-xyz"])

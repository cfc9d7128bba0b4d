from pathlib import Path

from plugin_wiki import __version__
from plugin_wiki.wiki_store import WikiStoreLayout


def test_version_is_set() -> None:
    assert __version__


def test_store_layout_is_deterministic(tmp_path: Path) -> None:
    layout = WikiStoreLayout(root=tmp_path)
    assert layout.pages_dir == tmp_path / "pages"
    assert layout.categories_dir == tmp_path / "categories"
    assert layout.announcements_dir == tmp_path / "announcements"
    assert layout.page_json_path("getting-started") == tmp_path / "pages" / "getting-started.json"


def test_static_pages_exist() -> None:
    import plugin_wiki

    static_dir = Path(plugin_wiki.__file__).resolve().parent / "static"
    assert (static_dir / "index.html").exists()
    assert (static_dir / "wiki.html").exists()

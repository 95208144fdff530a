"""受管产物标签存储测试"""

from pathlib import Path

from androidresolver.core.labels import LabelStore


class TestLabelStore:
    def test_label_persists(self, tmp_path: Path) -> None:
        f = tmp_path / "a.aar"
        f.write_bytes(b"x")
        store = LabelStore(tmp_path / "labels.yml")
        store.label([str(f), str(f)])

        reloaded = LabelStore(tmp_path / "labels.yml")
        assert reloaded.find_labeled() == [f.as_posix()]
        assert reloaded.is_labeled(str(f))

    def test_find_prunes_missing(self, tmp_path: Path) -> None:
        kept = tmp_path / "kept.aar"
        kept.write_bytes(b"x")
        store = LabelStore(tmp_path / "labels.yml")
        store.label([kept.as_posix(), (tmp_path / "gone.aar").as_posix()])
        assert store.find_labeled() == [kept.as_posix()]
        assert LabelStore(tmp_path / "labels.yml").is_labeled(kept.as_posix())
        assert not LabelStore(tmp_path / "labels.yml").is_labeled(
            (tmp_path / "gone.aar").as_posix())

    def test_unlabel(self, tmp_path: Path) -> None:
        store = LabelStore(tmp_path / "labels.yml")
        store.label(["x/a.aar", "x/b.aar"])
        store.unlabel(["x\\a.aar"])
        assert not store.is_labeled("x/a.aar")
        assert store.is_labeled("x/b.aar")

    def test_delete_labeled(self, tmp_path: Path) -> None:
        f = tmp_path / "a.aar"
        f.write_bytes(b"x")
        d = tmp_path / "exploded"
        (d / "libs").mkdir(parents=True)
        store = LabelStore(tmp_path / "labels.yml")
        store.label([str(f), str(d)])
        assert store.delete_labeled() == []
        assert not f.exists()
        assert not d.exists()
        assert store.find_labeled() == []

    def test_corrupt_label_file(self, tmp_path: Path) -> None:
        (tmp_path / "labels.yml").write_text("managed: [", encoding="utf-8")
        assert LabelStore(tmp_path / "labels.yml").find_labeled() == []

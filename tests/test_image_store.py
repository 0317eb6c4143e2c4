"""Tests for upload validation and file deletion in ImageStore."""

import io
import logging

import pytest
from werkzeug.datastructures import FileStorage

from storefront.errors import StorageError, UnsupportedFileType, ValidationError
from storefront.services import ImageStore


def _file(name='photo.png', mimetype='image/png'):
    return FileStorage(stream=io.BytesIO(b'data'), filename=name, content_type=mimetype)


@pytest.fixture
def store(tmp_path):
    return ImageStore(str(tmp_path / 'images'), max_files=5)


class TestCheckUpload:

    @pytest.mark.parametrize('name,mimetype', [
        ('a.png', 'image/png'),
        ('a.jpg', 'image/jpeg'),
        ('a.JPEG', 'image/jpeg'),
    ])
    def test_accepts_jpeg_and_png(self, name, mimetype):
        assert ImageStore.check_upload(_file(name, mimetype))

    @pytest.mark.parametrize('name,mimetype', [
        ('a.gif', 'image/gif'),
        ('a.png', 'text/plain'),
        ('a.txt', 'image/png'),
        ('noext', 'image/png'),
    ])
    def test_rejects_other_types(self, name, mimetype):
        with pytest.raises(UnsupportedFileType):
            ImageStore.check_upload(_file(name, mimetype))


class TestSaveAll:

    def test_saves_with_unique_names_under_prefix(self, store):
        saved = store.save_all([_file('same.png'), _file('same.png')])

        assert len(saved) == 2
        assert saved[0].path != saved[1].path
        for image in saved:
            assert image.original_name == 'same.png'
            assert image.path.startswith('/uploads/images/')
            assert image.path.endswith('.png')
            assert store.exists(image.path)

    def test_one_bad_file_saves_nothing(self, store):
        with pytest.raises(UnsupportedFileType):
            store.save_all([_file('ok.png'), _file('bad.gif', 'image/gif')])
        assert store.list_images() == []

    def test_too_many_files(self, store):
        with pytest.raises(ValidationError):
            store.save_all([_file(f'{i}.png') for i in range(6)])
        assert store.list_images() == []

    def test_skips_empty_parts(self, store):
        empty = FileStorage(stream=io.BytesIO(b''), filename='', content_type='application/octet-stream')
        assert store.save_all([empty]) == []

    def test_write_failure_rolls_back(self, store, monkeypatch):
        calls = {'n': 0}
        original = FileStorage.save

        def flaky_save(self, dst, *args, **kwargs):
            calls['n'] += 1
            if calls['n'] == 2:
                raise OSError('disk full')
            return original(self, dst, *args, **kwargs)

        monkeypatch.setattr(FileStorage, 'save', flaky_save)
        with pytest.raises(StorageError):
            store.save_all([_file('a.png'), _file('b.png')])
        assert store.list_images() == []


class TestDelete:

    def test_delete_existing(self, store):
        image = store.save_all([_file()])[0]
        store.delete(image.path)
        assert not store.exists(image.path)

    def test_missing_file_raises(self, store):
        with pytest.raises(StorageError) as exc:
            store.delete('/uploads/images/nope.png')
        assert exc.value.path == '/uploads/images/nope.png'

    @pytest.mark.parametrize('reference', ['/uploads/images/../secret.txt', '../x.png', '', '/etc/passwd'])
    def test_rejects_paths_outside_store(self, store, reference):
        assert store.path_for(reference) is None
        with pytest.raises(StorageError):
            store.delete(reference)

    def test_discard_logs_each_failure(self, store, caplog):
        image = store.save_all([_file()])[0]
        with caplog.at_level(logging.ERROR):
            failed = store.discard([image.path, '/uploads/images/gone.png'])
        assert failed == ['/uploads/images/gone.png']
        assert '/uploads/images/gone.png' in caplog.text
        assert not store.exists(image.path)

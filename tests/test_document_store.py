import pytest

from webserve.document import DocumentStore
from webserve.exceptions import ValidationError


def test_set_swaps_text_and_payload():
    store = DocumentStore('a')
    assert store.text() == 'a'
    assert store.payload() == b'a'
    assert store.version == 0
    assert store.set('ünïcode') == 1
    assert store.text() == 'ünïcode'
    assert store.payload() == 'ünïcode'.encode('utf-8')
    assert len(store) == len('ünïcode'.encode('utf-8'))


def test_empty_default():
    store = DocumentStore()
    assert store.payload() == b''
    assert len(store) == 0


def test_unencodable_text_rejected_and_previous_version_kept():
    store = DocumentStore('good')
    with pytest.raises(ValidationError):
        store.set('bad \ud800 doc')
    assert store.text() == 'good'
    assert store.payload() == b'good'
    assert store.version == 0

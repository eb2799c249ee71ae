#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
test_kdf
--------

Tests for `shrine.kdf` module.
"""

import pytest

from shrine.codec import (
    SecretStore,
    encode,
)
from shrine.exceptions import IntegrityError
from shrine.kdf import (
    KdfParams,
    SecretBytes,
    derive,
    verify,
    KEY_SIZE,
    SALT_SIZE,
)

from conftest import (
    PASSWORD,
    TEST_ITERATIONS,
)


class Test_SecretBytes(object):

    def test_wipe_empties(self):
        buf = SecretBytes(b'hunter2')
        assert bytes(buf) == b'hunter2'
        buf.wipe()
        assert len(buf) == 0

    def test_context_manager_wipes(self):
        with SecretBytes(b'hunter2') as buf:
            assert buf.expose() == b'hunter2'
        assert len(buf) == 0

    def test_repr_is_redacted(self):
        buf = SecretBytes(b'hunter2')
        assert 'hunter2' not in repr(buf)
        assert 'hunter2' not in str(buf)


class Test_KdfParams(object):

    def test_generate_fresh_salt(self):
        a = KdfParams.generate(TEST_ITERATIONS)
        b = KdfParams.generate(TEST_ITERATIONS)
        assert len(a.salt) == SALT_SIZE
        assert a.salt != b.salt
        assert a.iterations == TEST_ITERATIONS

    def test_generate_default_iterations(self, monkeypatch):
        monkeypatch.setenv('SHRINE_KDF_ITERATIONS', '2000')
        assert KdfParams.generate().iterations == 2000


class Test_Derive(object):

    def test_deterministic(self, params):
        a = derive(PASSWORD, params)
        b = derive(PASSWORD.encode('utf-8'), params)
        assert a.expose() == b.expose()
        assert len(a.expose()) == KEY_SIZE

    def test_depends_on_password(self, params):
        assert (
            derive('password', params).expose()
            != derive('Password', params).expose()
        )

    def test_depends_on_salt(self, params):
        other = KdfParams.generate(TEST_ITERATIONS)
        assert (
            derive(PASSWORD, params).expose()
            != derive(PASSWORD, other).expose()
        )

    def test_unsupported_algorithm(self, params):
        bogus = KdfParams(
            salt=params.salt, iterations=params.iterations, algorithm=99)
        with pytest.raises(ValueError):
            derive(PASSWORD, bogus)

    def test_wiped_key_matches_nothing(self, key, params):
        assert key.matches(params)
        key.wipe()
        assert key.wiped
        assert not key.matches(params)

    def test_repr_hides_material(self, key):
        assert 'iterations' in repr(key)
        assert key.expose().hex() not in repr(key)


class Test_Verify(object):

    def test_verify_good_key(self, key):
        blob = encode(SecretStore({'a': b'1'}), {}, key)
        assert verify(key, blob) is True

    def test_verify_bad_password(self, key, params):
        blob = encode(SecretStore({'a': b'1'}), {}, key)
        with pytest.raises(IntegrityError):
            verify(derive('wrong', params), blob)

    def test_verify_corrupted(self, key):
        blob = bytearray(encode(SecretStore({'a': b'1'}), {}, key))
        blob[-1] ^= 0x01
        with pytest.raises(IntegrityError):
            verify(key, bytes(blob))


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :

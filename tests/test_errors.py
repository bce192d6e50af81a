import errno
import os

import pytest

from minnow.errors import TaggedError, UnixError, check_system_call, not_null


def test_check_system_call_passes_through():
    assert check_system_call("read", 0) == 0
    assert check_system_call("read", 42) == 42


def test_check_system_call_raises_unix_error():
    with pytest.raises(UnixError) as info:
        check_system_call("open", -errno.ENOENT)
    assert info.value.error_code == errno.ENOENT
    assert info.value.attempt == "open"
    assert str(info.value) == "open: " + os.strerror(errno.ENOENT)


def test_unix_error_is_tagged_error():
    with pytest.raises(TaggedError):
        check_system_call("close", -errno.EBADF)


def test_tagged_error_message():
    error = TaggedError("getaddrinfo(host, 80)", 3, "temporary failure")
    assert str(error) == "getaddrinfo(host, 80): temporary failure"
    assert error.error_code == 3


def test_not_null():
    value = [1]
    assert not_null("context", value) is value
    assert not_null("context", 0) == 0
    with pytest.raises(RuntimeError, match="lookup: returned null pointer"):
        not_null("lookup", None)
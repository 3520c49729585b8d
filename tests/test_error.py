import pytest

import kpatch.error as error


def test_taxonomy():
    assert issubclass(error.MissingPatchSourceError, error.ConfigError)
    assert issubclass(error.ConflictingPatchSourceError, error.ConfigError)
    assert issubclass(error.UnrecognizedPatchFormatError, error.PatchTypeError)
    assert issubclass(error.AmbiguousPatchTypeError, error.PatchTypeError)
    assert issubclass(error.MissingTargetError, error.TargetError)
    assert issubclass(error.TargetNotFoundError, error.TargetError)
    for e in (error.ConfigError, error.PatchTypeError, error.TargetError, error.LoadError):
        assert issubclass(e, error.Error)


def test_wrap_exception():
    try:
        with error.wrap_exception(catch=ValueError, throw=RuntimeError):
            raise ValueError("oops")
    except RuntimeError as re:
        cause = re.__cause__
        assert type(cause) is ValueError
        assert cause.args == ("oops",)
        assert str(re) == "oops"


def test_wrap_exception_message():
    with pytest.raises(error.LoadError) as info:
        with error.wrap_exception(catch=OSError, throw=error.LoadError, message="nope"):
            raise FileNotFoundError("missing")
    assert str(info.value) == "nope"


def test_wrap_exception_multiple():
    for e in (KeyError("a"), IndexError("b")):
        with pytest.raises(error.Error):
            with error.wrap_exception(catch=(KeyError, IndexError)):
                raise e


def test_wrap_exception_uncaught():
    with pytest.raises(TypeError):
        with error.wrap_exception(catch=ValueError, throw=RuntimeError):
            raise TypeError


def test_wrap_exception_passthrough():
    original = error.LoadError("already")
    with pytest.raises(error.LoadError) as info:
        with error.wrap_exception(catch=Exception, throw=error.LoadError):
            raise original
    assert info.value is original


def test_patch_apply_error_cause():
    cause = ValueError("bad")
    assert error.PatchApplyError("failed", cause).cause is cause

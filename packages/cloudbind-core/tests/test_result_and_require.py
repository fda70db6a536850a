from __future__ import annotations

import json

import pytest

from cloudbind.core.connectors import require, require_attr
from cloudbind.core.exception import MissingCredential
from cloudbind.core.result import Result


def test_result_success_and_failure():
    ok = Result.success(3)
    assert ok.ok and ok.unwrap() == 3

    err = MissingCredential("no secret")
    bad = Result.failure(err)
    assert not bad.ok
    with pytest.raises(MissingCredential) as ei:
        bad.unwrap()
    assert ei.value is err


def test_require_module_and_attribute():
    assert require("json") is json
    assert require("json:dumps") is json.dumps
    assert require_attr("json", "loads") is json.loads


@pytest.mark.parametrize("target", ["cloudbind_no_such_sdk", "json:no_such_name"])
def test_require_points_at_reinstall(target):
    with pytest.raises(RuntimeError, match="pip install cloudbind-core") as ei:
        require(target)
    assert target in str(ei.value)
    assert ei.value.__cause__ is not None

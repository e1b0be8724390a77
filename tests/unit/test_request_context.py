import json

import pytest

from variant_hide.domain.context import RequestContext, SerializedRequestContext

pytestmark = pytest.mark.grp_queue


def test_capture_restore_keeps_all_fields():
    ctx = RequestContext(channel_id=3, channel_token="tok-3", language_code="de", user_id=9, is_authorized=False)
    snap = ctx.capture()

    # 快照必须可 JSON 序列化（队列 payload）
    raw = json.dumps(snap.model_dump(mode="json"))
    back = SerializedRequestContext.model_validate(json.loads(raw)).restore()

    assert back == ctx


def test_trace_id_defaults_are_unique():
    a = RequestContext(channel_id=1)
    b = RequestContext(channel_id=1)
    assert a.trace_id and b.trace_id
    assert a.trace_id != b.trace_id


def test_serialized_context_defaults():
    snap = SerializedRequestContext(channel_id=1)
    ctx = snap.restore()
    assert ctx.language_code == "en"
    assert ctx.is_authorized is True
    assert ctx.channel_token is None

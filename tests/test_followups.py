from storefront.services.followups import PostCommitActions


def test_actions_run_in_order():
    calls = []
    actions = PostCommitActions()
    actions.add("first", calls.append, 1)
    actions.add("second", calls.append, 2)

    assert actions.run() == {"first": True, "second": True}
    assert calls == [1, 2]
    assert len(actions) == 0


def test_failure_does_not_stop_the_rest(caplog):
    calls = []

    def boom():
        raise RuntimeError("mail server down")

    actions = PostCommitActions()
    actions.add("boom", boom)
    actions.add("after", calls.append, "ran")

    assert actions.run() == {"boom": False, "after": True}
    assert calls == ["ran"]
    assert "Post-commit action 'boom' failed" in caplog.text


def test_discard_drops_everything():
    calls = []
    actions = PostCommitActions()
    actions.add("never", calls.append, 1)

    actions.discard()

    assert actions.run() == {}
    assert calls == []

"""
Unit tests for the post-commit side effect runner.
"""

from quoteflow.services.side_effects import SideEffects


class StubSession:
    def __init__(self):
        self.rollbacks = 0

    def rollback(self):
        self.rollbacks += 1


class TestSideEffects:

    def test_runs_in_order(self):
        calls = []
        effects = SideEffects(StubSession())
        effects.add('first', calls.append, 1)
        effects.add('second', calls.append, 2)

        results = effects.run()

        assert calls == [1, 2]
        assert results == {'first': True, 'second': True}

    def test_failure_does_not_stop_remaining_effects(self):
        """A raising effect is recorded, the session rolled back, the next effect still runs."""
        session = StubSession()
        calls = []

        def boom():
            raise RuntimeError('SMTP down')

        effects = SideEffects(session, context='quote=1')
        effects.add('notification', boom)
        effects.add('event', calls.append, 'logged')

        results = effects.run()

        assert results == {'notification': False, 'event': True}
        assert calls == ['logged']
        assert session.rollbacks == 1

    def test_false_return_counts_as_failure(self):
        effects = SideEffects(StubSession())
        effects.add('followup', lambda: False)
        assert effects.run() == {'followup': False}

    def test_effects_cleared_after_run(self):
        effects = SideEffects(StubSession())
        effects.add('noop', lambda: None)
        effects.run()
        assert len(effects) == 0

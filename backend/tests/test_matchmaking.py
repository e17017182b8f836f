from arena.services.matches.matchmaking import RankedMatchmaker, RankedQueueEntry


def _entry(sid, rating, input_mode='voice', user=None):
    return RankedQueueEntry(connection_id=sid, user_id=user or f'user-{sid}', username=f'name-{sid}',
                            rating=rating, input_mode=input_mode)


def test_close_ratings_are_paired(broadcaster):
    mm = RankedMatchmaker(broadcaster)
    assert mm.join(_entry('a', 1000)) is None
    pairing = mm.join(_entry('b', 1150))

    assert pairing is not None
    assert pairing.match_id.startswith('ranked-')
    assert len(mm) == 0
    found_a = broadcaster.sent_to('a', 'match_found')
    found_b = broadcaster.sent_to('b', 'match_found')
    assert found_a == [('match_found', {'matchId': pairing.match_id, 'opponentName': 'name-b', 'inputMode': 'voice'})]
    assert found_b == [('match_found', {'matchId': pairing.match_id, 'opponentName': 'name-a', 'inputMode': 'voice'})]
    assert broadcaster.sent_to('a', 'queue_joined') == [('queue_joined', {'position': 1})]


def test_distant_ratings_stay_queued(broadcaster):
    mm = RankedMatchmaker(broadcaster)
    mm.join(_entry('a', 1000))
    assert mm.join(_entry('c', 1300)) is None
    assert [e.connection_id for e in mm.waiting()] == ['a', 'c']
    assert broadcaster.sent_to('c', 'queue_joined') == [('queue_joined', {'position': 2})]


def test_window_is_exclusive_and_input_mode_must_match(broadcaster):
    mm = RankedMatchmaker(broadcaster, rating_window=200)
    mm.join(_entry('a', 1000))
    assert mm.join(_entry('b', 1200)) is None
    assert mm.join(_entry('c', 1050, input_mode='chat')) is None
    assert len(mm) == 3


def test_first_fit_not_best_fit(broadcaster):
    mm = RankedMatchmaker(broadcaster)
    mm.join(_entry('a', 1000))
    mm.join(_entry('b', 1250))
    assert len(mm) == 2

    # b is closer (100 vs 150) but a has waited longer
    pairing = mm.join(_entry('z', 1150))
    assert pairing.first.connection_id == 'a'
    assert [e.connection_id for e in mm.waiting()] == ['b']


def test_rejoin_replaces_previous_entry(broadcaster):
    mm = RankedMatchmaker(broadcaster)
    mm.join(_entry('a', 1000))
    assert mm.join(_entry('a', 1000)) is None
    assert len(mm) == 1

    # Same user from a second connection is not paired with itself
    assert mm.join(_entry('a2', 1000, user='user-a')) is None
    assert len(mm) == 2


def test_leave_is_idempotent(broadcaster):
    mm = RankedMatchmaker(broadcaster)
    mm.join(_entry('a', 1000))
    assert mm.leave('a') is True
    assert mm.leave('a') is False
    assert len(mm) == 0
    assert broadcaster.sent_to('a', 'queue_left') == [('queue_left', {}), ('queue_left', {})]


def test_queue_join_uses_stored_rating(core, store, broadcaster):
    store.ratings['42'] = 1500
    core.queue_join('sid-1', 42, 'veteran')
    core.queue_join('sid-2', 'guest', 'newbie')
    assert [(e.user_id, e.rating) for e in core.matchmaker.waiting()] == [('42', 1500), ('guest', 1000)]

    core.disconnect('sid-1')
    assert [e.connection_id for e in core.matchmaker.waiting()] == ['sid-2']
    assert broadcaster.sent_to('sid-1', 'queue_left') == []

import random

from arena.services.matches.phases import Phase


def test_crowd_votes_left_left_right(core, make_match, broadcaster, oracle):
    match = make_match('votes')
    for side in ['left', 'left', 'right']:
        core.crowd_vote('votes', side)
    assert match.momentum == 49
    assert [p['momentum'] for p in broadcaster.events('game_update', 'votes')] == [49, 48, 49]
    # Votes never reach the judge
    assert oracle.score_calls == []


def test_crowd_vote_ignored_on_finished_match_or_unknown_side(core, make_match):
    match = make_match('done', phase=Phase.RESULTS)
    assert core.crowd_vote('done', 'left') is None
    assert match.momentum == 50

    live = make_match('live')
    assert core.crowd_vote('live', 'middle') is None
    assert live.momentum == 50
    assert core.crowd_vote('nope', 'left') is None


def test_utterance_scored_and_broadcast(core, make_match, oracle, store, broadcaster):
    oracle.delta = -4
    match = make_match('talk', phase=Phase.OPENING_P1)

    delta = core.engine.apply_utterance(match, 'Creativity is not a dataset.', 'left', user_id='7')

    assert delta == -4
    assert match.momentum == 46
    assert match.transcripts == ['Creativity is not a dataset.']
    assert oracle.score_calls == [('Creativity is not a dataset.', 'Opening_P1', 'left')]
    assert broadcaster.events('game_update', 'talk')[-1] == {
        'momentum': 46, 'lastDelta': -4, 'transcript': 'Creativity is not a dataset.',
    }
    assert store.messages == [('talk', '7', 'Creativity is not a dataset.', 'Opening_P1', -4)]


def test_utterances_ignored_in_lobby_and_results(core, make_match, oracle, store):
    lobby = make_match('lobby')
    finished = make_match('finished', phase=Phase.RESULTS)
    for match in (lobby, finished):
        assert core.engine.apply_utterance(match, 'Too early or too late', 'left') is None
        assert core.engine.apply_utterance(match, 'Announcer line', 'system') is None
        assert match.transcripts == []
        assert match.momentum == 50
    assert oracle.score_calls == []
    assert store.messages == []


def test_off_turn_speech_is_dropped(core, make_match, oracle, store):
    oracle.delta = 6
    match = make_match('turns', phase=Phase.REBUTTAL_P1)

    assert core.engine.apply_utterance(match, 'Interrupting!', 'right') is None
    assert match.transcripts == []
    assert match.momentum == 50
    assert store.messages == []

    match.phase = Phase.CROSSFIRE
    assert core.engine.apply_utterance(match, 'Now I may speak.', 'right') == 6
    assert match.momentum == 56


def test_oracle_failure_yields_neutral_delta(core, make_match, oracle, store):
    oracle.fail_scoring = True
    match = make_match('flaky', phase=Phase.CROSSFIRE)

    assert core.engine.apply_utterance(match, 'Still counts for the record.', 'left') == 0
    assert match.transcripts == ['Still counts for the record.']
    assert match.momentum == 50
    assert store.messages[-1][-1] == 0


def test_system_speaker_never_scored(core, make_match, oracle):
    oracle.delta = 9
    match = make_match('sys', phase=Phase.OPENING_P2)
    assert core.engine.apply_utterance(match, 'Thirty seconds remain.', 'system') == 0
    assert oracle.score_calls == []
    assert match.momentum == 50


def test_out_of_contract_delta_is_clamped_not_rejected(core, make_match, oracle):
    oracle.delta = 12
    match = make_match('hot', phase=Phase.OPENING_P2, momentum=95)
    assert core.engine.apply_utterance(match, 'A devastating point.', 'right') == 12
    assert match.momentum == 100

    oracle.delta = -12
    low = make_match('cold', phase=Phase.OPENING_P1, momentum=3)
    core.engine.apply_utterance(low, 'Another devastating point.', 'left')
    assert low.momentum == 0


def test_momentum_stays_in_bounds_for_random_sequences(core, make_match, oracle):
    rng = random.Random(1234)
    match = make_match('fuzz', phase=Phase.CROSSFIRE)
    for _ in range(500):
        if rng.random() < 0.5:
            core.crowd_vote('fuzz', rng.choice(['left', 'right']))
        else:
            oracle.delta = rng.randint(-15, 15)
            core.engine.apply_utterance(match, 'point', rng.choice(['left', 'right']))
        assert 0 <= match.momentum <= 100


def test_delta_arriving_after_results_is_discarded(core, make_match, oracle):
    match = make_match('slow', phase=Phase.CLOSING_P2)

    def finish_while_judging(text, phase, side):
        # The clock moves the match into Results while the judge is thinking
        match.phase = Phase.RESULTS
        return 8

    oracle.score_impact = finish_while_judging
    assert core.engine.apply_utterance(match, 'Final words.', 'right') is None
    assert match.momentum == 50


def test_message_store_failure_is_not_fatal(core, make_match, oracle, store):
    oracle.delta = 3
    store.fail_messages = True
    match = make_match('nodb', phase=Phase.OPENING_P1)
    assert core.engine.apply_utterance(match, 'Persist me if you can.', 'left') == 3
    assert match.momentum == 53


def test_submit_utterance_uses_session_seat(core, oracle, broadcaster):
    oracle.delta = -2
    core.join('sid-left', 'seats')
    core.join('sid-right', 'seats')
    core.join('sid-watch', 'seats')
    match = core.registry.get('seats')
    match.phase = Phase.OPENING_P1

    assert core.submit_utterance('sid-right', 'seats', 'Not my turn') is None
    assert core.submit_utterance('sid-watch', 'seats', 'Spectator heckle') is None
    assert core.submit_utterance('sid-left', 'seats', 'My opening') == -2
    assert core.submit_utterance('sid-left', 'unknown-room', 'Hello?') is None
    assert match.transcripts == ['My opening']


def test_claimed_side_cannot_override_the_held_seat(core, oracle):
    oracle.delta = -7
    core.join('sid-left', 'claims')
    core.join('sid-right', 'claims')
    core.join('sid-watch', 'claims')
    match = core.registry.get('claims')
    match.phase = Phase.OPENING_P1

    assert core.submit_utterance('sid-watch', 'claims', 'Heckle', side='left') is None
    assert core.submit_utterance('stranger', 'claims', 'Drive-by', side='left') is None
    assert core.submit_utterance('sid-right', 'claims', 'Borrowed turn', side='left') is None
    assert match.transcripts == []
    assert match.momentum == 50

    assert core.submit_utterance('sid-left', 'claims', 'My own turn', side='left') == -7
    assert match.transcripts == ['My own turn']

from fair.services.tally import rank_points


def test_default_scale_descends_from_team_count():
    assert [rank_points(rank, None, 5) for rank in range(1, 6)] == [5, 4, 3, 2, 1]


def test_default_scale_never_goes_negative():
    assert rank_points(7, {}, 5) == 0


def test_configured_entry_wins_over_default():
    config = {"1": 10, "2": 7, "3": 5, "4": 3, "5": 1}

    assert rank_points(3, config, 5) == 5
    assert rank_points(3, {"3": 7}, 5) == 7


def test_missing_configured_entry_falls_back_to_default():
    assert rank_points(4, {"1": 10}, 5) == 2


def test_non_numeric_configured_entry_is_ignored():
    assert rank_points(1, {"1": "lots"}, 3) == 3


def test_config_that_is_not_a_mapping_is_treated_as_absent():
    assert rank_points(1, [10, 7, 5], 3) == 3
    assert rank_points(2, "10,7,5", 3) == 2

from voterroll.models import Voter
from voterroll.tracking import (
    VoteFilter,
    find_by_epic,
    mark_voted,
    search,
    sort_by_serial,
    toggle_vote,
    update_voter,
)


def roll():
    return [
        Voter(sl_no="10", epic_no="ABC0000010", name_en="Ravi Kumar", house_no="4-5/A"),
        Voter(sl_no="2", epic_no="ABC0000002", name_en="Sita", house_no="12B", is_voted=True, voted_party="BJP"),
        Voter(sl_no="x", epic_no="ABC0000099", name_en="Anil"),
        Voter(sl_no="1", epic_no="ABC0000001", name_en="Kumari"),
    ]


def test_toggle_vote_sets_and_clears():
    voter = Voter(epic_no="ABC1234567")

    toggle_vote(voter, now=1000)
    assert voter.is_voted and voter.timestamp == 1000

    mark_voted(voter, "INC", now=2000)
    toggle_vote(voter, now=3000)
    assert voter.is_voted is False
    assert voter.voted_party is None
    assert voter.timestamp == 3000


def test_mark_voted_without_party():
    voter = mark_voted(Voter(epic_no="ABC1234567"), "", now=5)
    assert voter.is_voted is True
    assert voter.voted_party is None


def test_update_voter_by_epic():
    voters = roll()
    updated = Voter(sl_no="2", epic_no="ABC0000002", name_en="Sita Devi")

    assert update_voter(voters, updated) is True
    assert voters[1] is updated
    assert update_voter(voters, Voter(epic_no="ZZZ0000000")) is False


def test_find_by_epic_normalizes_input():
    assert find_by_epic(roll(), " abc0000099 ").name_en == "Anil"
    assert find_by_epic(roll(), "ZZZ0000000") is None


def test_sort_by_serial_numeric_and_stable():
    assert [v.sl_no for v in sort_by_serial(roll())] == ["x", "1", "2", "10"]


def test_search_term_fields():
    voters = roll()
    assert [v.sl_no for v in search(voters, "kumar")] == ["1", "10"]
    assert [v.sl_no for v in search(voters, "abc0000099")] == ["x"]
    assert [v.sl_no for v in search(voters, "12b")] == ["2"]
    # "1" also hits EPIC digits and house "12B"
    assert [v.sl_no for v in search(voters, "1")] == ["1", "2", "10"]
    assert len(search(voters, "")) == 4


def test_search_status_filter():
    voters = roll()
    assert [v.sl_no for v in search(voters, status=VoteFilter.VOTED)] == ["2"]
    assert [v.sl_no for v in search(voters, status="NOT_VOTED")] == ["x", "1", "10"]

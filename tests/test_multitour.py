"""Collections of closed tours over disjoint visits."""

import pytest

from tourforge.core.multitour import MultiTour
from tourforge.core.tour import Tour


def _solution():
    return MultiTour.closed([[0, 1, 2], [3, 4], [5]])


def test_ownership_follows_the_tours():
    solution = _solution()

    assert len(solution) == 3
    assert solution.count == 6
    assert solution.tour_of(4) == 1
    assert solution.tour_of(9) == -1
    assert 5 in solution
    assert 9 not in solution
    assert solution.to_lists() == [[0, 1, 2], [3, 4], [5]]
    assert str(solution) == " | ".join(str(tour) for tour in solution)


def test_add_rejects_open_tours_and_shared_visits():
    solution = _solution()

    with pytest.raises(ValueError):
        solution.add(Tour([6, 7]))
    with pytest.raises(ValueError):
        solution.add(Tour.closed([6, 4]))

    assert solution.add(Tour.closed([6, 7])) == 3
    assert solution.tour_of(7) == 3


def test_insert_after_needs_the_anchor_in_that_tour():
    solution = _solution()

    with pytest.raises(ValueError):
        solution.insert_after(0, 3, 6)
    with pytest.raises(ValueError):
        solution.insert_after(1, 3, 0)

    solution.insert_after(1, 3, 6)
    assert solution.tour(1).to_list() == [3, 6, 4]
    assert solution.tour_of(6) == 1


def test_remove_returns_the_former_neighbours():
    solution = _solution()

    assert solution.remove(1) == (0, 2)
    assert solution.tour(0).to_list() == [0, 2]
    assert solution.tour_of(1) == -1


def test_removing_the_first_visit_restarts_the_tour_at_its_successor():
    solution = _solution()

    assert solution.remove(0) == (2, 1)
    assert solution.tour(0).to_list() == [1, 2]
    assert solution.tour(0).is_closed
    assert solution.tour_of(0) == -1
    assert solution.count == 5


def test_remove_never_empties_a_tour():
    solution = _solution()

    with pytest.raises(ValueError):
        solution.remove(5)
    with pytest.raises(ValueError):
        solution.remove(9)


def test_swap_trades_places_between_tours():
    solution = _solution()

    solution.swap(0, 4)

    assert solution.tour(0).to_list() == [4, 1, 2]
    assert solution.tour(1).to_list() == [3, 0]
    assert solution.tour_of(0) == 1
    assert solution.tour_of(4) == 0
    with pytest.raises(ValueError):
        solution.swap(1, 2)


def test_set_tours_moves_visits_between_the_replaced_tours():
    solution = _solution()

    solution.set_tours({0: Tour.closed([0, 3]), 1: Tour.closed([4, 1, 2])})

    assert solution.to_lists() == [[0, 3], [4, 1, 2], [5]]
    assert solution.tour_of(3) == 0
    assert solution.tour_of(1) == 1
    assert solution.count == 6


def test_set_tours_cannot_take_visits_from_other_tours():
    solution = _solution()

    with pytest.raises(ValueError):
        solution.set_tours({0: Tour.closed([0, 1, 2, 5])})
    with pytest.raises(ValueError):
        solution.set_tours({0: Tour.closed([0, 1]), 1: Tour.closed([1, 2, 3, 4])})
    assert solution.to_lists() == [[0, 1, 2], [3, 4], [5]]


def test_clone_is_independent():
    solution = _solution()
    copy = solution.clone()

    copy.swap(1, 3)
    copy.remove(2)

    assert solution.to_lists() == [[0, 1, 2], [3, 4], [5]]
    assert solution.tour_of(1) == 0
    assert copy.to_lists() == [[0, 3], [1, 4], [5]]

# -*- coding: utf-8 -*-
"""
Shared fixtures

The catalog below holds 53 titles, exactly two of which contain the word "American".
"""

from typing import List

import pytest

from core.events import get_event_publisher


BOOK_TITLES: List[str] = [
    "American Gods",
    "The Quiet American",
    "The Great Gatsby",
    "Moby Dick",
    "Pride and Prejudice",
    "War and Peace",
    "Crime and Punishment",
    "The Catcher in the Rye",
    "To Kill a Mockingbird",
    "Brave New World",
    "Nineteen Eighty-Four",
    "Animal Farm",
    "Jane Eyre",
    "Wuthering Heights",
    "The Hobbit",
    "The Lord of the Rings",
    "Dracula",
    "Frankenstein",
    "Ulysses",
    "Don Quixote",
    "The Odyssey",
    "The Iliad",
    "Madame Bovary",
    "Anna Karenina",
    "Middlemarch",
    "Great Expectations",
    "Bleak House",
    "Little Women",
    "Emma",
    "Persuasion",
    "The Trial",
    "The Castle",
    "Lolita",
    "Catch-22",
    "Beloved",
    "Invisible Man",
    "The Sound and the Fury",
    "Slaughterhouse-Five",
    "On the Road",
    "Dune",
    "Foundation",
    "Neuromancer",
    "The Road",
    "Blood Meridian",
    "Gilead",
    "Middlesex",
    "The Color Purple",
    "Their Eyes Were Watching God",
    "Things Fall Apart",
    "One Hundred Years of Solitude",
    "The Stranger",
    "The Plague",
    "Siddhartha",
]


@pytest.fixture
def book_titles() -> List[str]:
    return list(BOOK_TITLES)


@pytest.fixture
def event_publisher():
    """Process-wide publisher, emptied before and after the test"""
    publisher = get_event_publisher()
    publisher.clear()
    yield publisher
    publisher.clear()

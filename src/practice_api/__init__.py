"""Practice REST API: books, tours, users and a tech-word guessing game."""

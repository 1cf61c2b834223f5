"""TMDB image size variants."""

POSTER_SIZES = ("w92", "w154", "w185", "w342", "w500", "w780", "original")
BACKDROP_SIZES = ("w300", "w780", "w1280", "original")
STILL_SIZES = ("w92", "w185", "w300", "original")

POSTER_GRID = "w342"
BACKDROP_DEFAULT = "w780"
STILL_ROW = "w300"

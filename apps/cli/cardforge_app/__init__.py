"""Command line front end for the card renderer."""

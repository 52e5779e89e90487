"""Command line interface for the merge request tracker."""

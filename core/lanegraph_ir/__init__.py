"""Cluster graph to lane-graph road and intersection synthesis."""

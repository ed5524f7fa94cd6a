"""Client for running batch MPI jobs on an ec2cluster REST service."""

__version__ = "0.1.0"

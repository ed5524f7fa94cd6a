"""Predefined workflows."""

from clusterjob.domain.models import Workflow

# Kmeans MPI demo: code/Simple_Kmeans.zip holds the C source, and
# code/run_kmeans.sh unzips, compiles and runs it on every node.
KMEANS_DEMO = Workflow(
    name="Kmeans demo",
    description="Simple Kmeans C MPI example",
    input_files=[
        "input/color100.txt",
        "code/Simple_Kmeans.zip",
        "code/run_kmeans.sh",
    ],
    commands="bash run_kmeans.sh",
    expected_outputs=[
        "color100.txt.membership",
        "color100.txt.cluster_centres",
    ],
    number_of_instances=3,
    instance_type="m1.small",
)

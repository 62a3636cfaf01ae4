"""A simulated teaching kernel: scheduler, semaphores, descriptors, shell, philosophers and image packer."""

__version__ = "0.1.0"

__all__ = [
    "strings",
    "rng",
    "packer",
    "semaphores",
    "fdtable",
    "processes",
    "shell",
    "phylos",
]
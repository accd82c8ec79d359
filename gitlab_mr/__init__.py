# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""GitLab merge request helper CLI with multi-profile support"""

__version__ = "0.1.0"

#! /usr/bin/env python
"""The module creates some basic constants to describe the package."""

title_name = "mpcomposer"
name = "mpcomposer"
copyright = "\xA92026, the mpcomposer authors"

major_version = "0.1"
build_date = "20261019"
version = "%s.%s" % (major_version, build_date)

title = (
    "mpcomposer: "
    "streaming composer for multipart/form-data request bodies")

home = "https://pypi.org/project/mpcomposer/"

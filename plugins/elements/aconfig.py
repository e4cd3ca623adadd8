"""aconfig build element plugin for BuildStream.

Runs the host ``aconfig`` tool for elements generated by aconfig2bst. Two
modes are selected by the ``aconfig-command`` variable:

* ``create-cache``: builds the flag cache of one aconfig_declarations module
  for one release config, plus its text dump.
* ``dump-all``: combines the caches of every declarations element it depends
  on into ``all_aconfig_declarations.pb`` and ``.textproto``.

The commands live in aconfig.yaml; this class only pins the API version.
"""

from buildstream import BuildElement


class AconfigElement(BuildElement):

    BST_MIN_VERSION = "2.0"


def setup():
    return AconfigElement

"""aconfig_files - stage an explicit list of files from an AOSP tree.

aconfig elements need a handful of declaration and value files scattered
across the tree. Staging whole directories would pull in most of AOSP, so
this source stages only the listed files, keeping their paths relative to
the tree root.

**Usage:**

.. code:: yaml

   kind: aconfig_files
   path: /home/user/aosp
   files:
   - frameworks/base/core/java/android/flags.aconfig
   - build/release/aconfig/bp1a/android.os/flag.textproto

.. warning::

   Like ``local_external`` this relies on an absolute host path and is not
   reproducible across machines.
"""

import os
import hashlib

from buildstream import Source, SourceError, Directory


class AconfigFilesSource(Source):

    BST_MIN_VERSION = "2.0"
    BST_STAGE_VIRTUAL_DIRECTORY = True

    def configure(self, node):
        node.validate_keys(["path", "files", *Source.COMMON_CONFIG_KEYS])
        self.path = node.get_str("path")
        self.files = node.get_str_list("files")
        if not os.path.isabs(self.path):
            raise SourceError(
                "{}: aconfig_files path must be absolute, got: {}".format(self, self.path),
                reason="path-not-absolute",
            )
        for rel in self.files:
            if os.path.isabs(rel) or rel.split("/")[0] == "..":
                raise SourceError(
                    "{}: file must be relative to {}, got: {}".format(self, self.path, rel),
                    reason="file-not-relative",
                )

    def preflight(self):
        if not os.path.isdir(self.path):
            raise SourceError(
                "{}: path does not exist: {}".format(self, self.path),
                reason="path-not-found",
            )

    def is_resolved(self):
        return True

    def is_cached(self):
        return True

    def get_unique_key(self):
        # Content hash of every staged file, keyed by its relative path.
        digest = hashlib.sha256()
        for rel in sorted(self.files):
            digest.update(rel.encode())
            try:
                with open(os.path.join(self.path, rel), "rb") as f:
                    digest.update(hashlib.sha256(f.read()).digest())
            except OSError as e:
                raise SourceError(
                    "{}: cannot read {}: {}".format(self, rel, e),
                    reason="file-not-readable",
                ) from e
        return digest.hexdigest()

    def load_ref(self, node):
        pass

    def get_ref(self):
        return None

    def set_ref(self, ref, node):
        pass

    def fetch(self):
        pass

    def stage_directory(self, directory):
        assert isinstance(directory, Directory)
        with self.timed_activity("Staging {} aconfig file(s) from {}".format(len(self.files), self.path)):
            for rel in self.files:
                subdir, _, _ = rel.rpartition("/")
                target = directory.open_directory(subdir, create=True) if subdir else directory
                target.import_single_file(os.path.join(self.path, rel))


def setup():
    return AconfigFilesSource

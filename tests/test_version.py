import pathlib
import re

from absl.testing import absltest

import tmcmc


class VersionTest(absltest.TestCase):
    def test_packaged_version_matches_the_package(self):
        """setup.py parses the version file instead of importing the package."""
        root = pathlib.Path(__file__).resolve().parents[1]
        setup_source = (root / "setup.py").read_text(encoding="utf-8")
        pattern = re.search(r're\.search\(r"(.+)", f\.read\(\)', setup_source).group(1)
        version_source = (root / "tmcmc" / "_version.py").read_text(encoding="utf-8")

        self.assertNotIn("exec(", setup_source)
        self.assertEqual(
            re.search(pattern, version_source, re.M).group(1), tmcmc.__version__
        )


if __name__ == "__main__":
    absltest.main()

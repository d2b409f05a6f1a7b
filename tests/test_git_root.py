import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path


class TestGitRoot(unittest.TestCase):
    def test_missing_directory(self) -> None:
        from cyclekit.kernel.git import git_root, same_directory

        with tempfile.TemporaryDirectory() as td:
            self.assertIsNone(git_root(Path(td) / "missing"))
            self.assertTrue(same_directory(Path(td), Path(td) / "."))
            self.assertFalse(same_directory(Path(td), None))

    @unittest.skipIf(shutil.which("git") is None, "git not installed")
    def test_root_of_nested_directory(self) -> None:
        from cyclekit.kernel.git import git_root

        with tempfile.TemporaryDirectory() as td:
            root = Path(td).resolve()
            subprocess.run(["git", "init", "-q", str(root)], check=True)
            nested = root / "src" / "pkg"
            nested.mkdir(parents=True)
            self.assertEqual(git_root(nested), root)


if __name__ == "__main__":
    unittest.main()

import types
import unittest

from cadence.playback.loader import BACKEND_MODULES, BackendLoader
from tests.fakes import T1, FakeFactory, ImmediateWorker


class CountingImporter:
    def __init__(self, module=None, error=None):
        self.module = module or types.SimpleNamespace(createHandle=FakeFactory())
        self.error = error
        self.calls = []

    def __call__(self, name):
        self.calls.append(name)
        if self.error is not None:
            raise self.error
        return self.module


class TestBackendLoader(unittest.TestCase):
    def test_imports_once(self):
        importer = CountingImporter()
        loader = BackendLoader("fake", "fake.backend", importer)

        first = loader.load()
        second = loader.load()

        self.assertIs(first, second)
        self.assertEqual(importer.calls, ["fake.backend"])
        self.assertTrue(loader.isReady())
        self.assertIs(loader.module, importer.module)

    def test_ready_callbacks_run_once_loaded(self):
        loader = BackendLoader("fake", "fake.backend", CountingImporter())
        fired = []
        ready = []
        loader.ready.connect(ready.append)

        loader.whenReady(lambda: fired.append("early"))
        self.assertEqual(fired, [])

        loader.load(ImmediateWorker())
        loader.whenReady(lambda: fired.append("late"))

        self.assertEqual(fired, ["early", "late"])
        self.assertEqual(ready, ["fake"])

    def test_failing_callback_does_not_block_others(self):
        loader = BackendLoader("fake", "fake.backend", CountingImporter())
        fired = []

        def broken():
            raise RuntimeError("boom")

        loader.whenReady(broken)
        loader.whenReady(lambda: fired.append(True))
        loader.load()

        self.assertEqual(fired, [True])

    def test_import_failure(self):
        loader = BackendLoader("fake", "fake.backend", CountingImporter(error=OSError("libmpv not found")))
        failures = []
        fired = []
        loader.failed.connect(lambda name, message: failures.append((name, message)))
        loader.whenReady(lambda: fired.append(True))

        future = loader.load()

        self.assertIsInstance(future.exception(), OSError)
        self.assertFalse(loader.isReady())
        self.assertIsNone(loader.module)
        self.assertEqual(failures, [("fake", "libmpv not found")])
        self.assertEqual(fired, [])
        with self.assertRaises(RuntimeError):
            loader.createHandle(T1, "el-1")

    def test_create_handle_delegates_to_module(self):
        importer = CountingImporter()
        loader = BackendLoader("fake", "fake.backend", importer)
        loader.load()

        handle = loader.createHandle(T1, "el-1")

        self.assertIs(handle, importer.module.createHandle.handles[0])
        self.assertEqual(handle.elementId, "el-1")

    def test_get_instance(self):
        self.assertIs(BackendLoader.get_instance("mpv"), BackendLoader.get_instance("mpv"))
        self.assertEqual(BackendLoader.get_instance("vlc").moduleName, BACKEND_MODULES["vlc"])
        with self.assertRaises(ValueError):
            BackendLoader.get_instance("winamp")


if __name__ == "__main__":
    unittest.main()

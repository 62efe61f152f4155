import numpy as np

__all__ = ['TrajectoryWriter', 'read_trajectory']


class TrajectoryWriter:
    """Append-only coordinate log.

    Every written frame is one line: the time followed by the flattened
    x y z coordinates of all atoms. The file is flushed after each frame.

    Args:
     - filename: path of the log file (created if missing, appended otherwise)
     - stride: write every `stride` steps
    """

    def __init__(self, filename, stride=1):
        assert stride >= 1, "stride must be at least 1"
        self.filename = str(filename)
        self.stride = int(stride)
        self._file = open(self.filename, "a")

    def write(self, positions, step, time):
        if step % self.stride != 0:
            return False
        coords = " ".join(repr(float(x)) for x in np.ravel(positions))
        self._file.write(f"{time!r} {coords}\n")
        self._file.flush()
        return True

    def close(self):
        self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def read_trajectory(filename):
    """Read a coordinate log written by TrajectoryWriter.

    Returns:
     - times: array of shape (nframes,)
     - frames: array of shape (nframes,N,3)
    """
    data = np.loadtxt(filename, ndmin=2)
    return data[:, 0], data[:, 1:].reshape(data.shape[0], -1, 3)

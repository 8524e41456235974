import ctypes
import ctypes.util
import os
import struct

class Libc:
    IN_MODIFY      = 0x00000002 # File changed
    IN_ATTRIB      = 0x00000004 # Metadata changed
    IN_CLOSE_WRITE = 0x00000008 # Writeable file closed
    IN_MOVED_FROM  = 0x00000040 # Moved *from*
    IN_MOVED_TO    = 0x00000080 # Moved *to*
    IN_CREATE      = 0x00000100 # File created
    IN_DELETE      = 0x00000200 # File deleted
    IN_DELETE_SELF = 0x00000400 # Watched directory deleted
    IN_MOVE_SELF   = 0x00000800 # Watched directory moved
    IN_Q_OVERFLOW  = 0x00004000 # Event queue overflowed
    IN_IGNORED     = 0x00008000 # Watch was removed
    IN_ONLYDIR     = 0x01000000 # Only watch the path if it is a directory
    IN_DONT_FOLLOW = 0x02000000 # Don't follow a symlink
    IN_ISDIR       = 0x40000000 # Event subject is a directory

    IN_NONBLOCK    = 0x00000800
    IN_CLOEXEC     = 0x00080000

    IN_ALL_CHANGES = (IN_MODIFY | IN_ATTRIB | IN_CLOSE_WRITE | IN_MOVED_FROM | IN_MOVED_TO |
        IN_CREATE | IN_DELETE | IN_DELETE_SELF | IN_MOVE_SELF)

    IN_CREATED_CHANGES = (IN_MOVED_TO | IN_CREATE)
    IN_DELETED_CHANGES = (IN_DELETE | IN_DELETE_SELF)
    IN_RENAMED_CHANGES = (IN_MOVED_FROM | IN_MOVE_SELF)
    IN_SELF_CHANGES    = (IN_DELETE_SELF | IN_MOVE_SELF)

    INOTIFY_HEADER_FORMAT = 'iIII'
    INOTIFY_HEADER_SIZE = struct.calcsize(INOTIFY_HEADER_FORMAT)

    def __init__(self):
        libc_path = ctypes.util.find_library('c')
        if libc_path is None:
            libc_path = 'libc.so.6'

        lib = ctypes.CDLL(libc_path, use_errno=True)

        self.inotify_init1 = lib.inotify_init1
        self.inotify_init1.argtypes = [ctypes.c_int]

        self.inotify_add_watch = lib.inotify_add_watch
        self.inotify_add_watch.argtypes = [ ctypes.c_int, ctypes.c_char_p, ctypes.c_uint32 ]

        self.inotify_rm_watch = lib.inotify_rm_watch
        self.inotify_rm_watch.argtypes = [ctypes.c_int, ctypes.c_int]

    def init(self):
        fd = self.inotify_init1(self.IN_NONBLOCK | self.IN_CLOEXEC)
        if fd < 0:
            raise last_os_error('inotify_init1')
        return fd

    def add_watch(self, fd, path):
        wd = self.inotify_add_watch(fd, os.fsencode(path), self.IN_ALL_CHANGES | self.IN_ONLYDIR | self.IN_DONT_FOLLOW)
        if wd < 0:
            raise last_os_error(path)
        return wd

    def rm_watch(self, fd, wd):
        return self.inotify_rm_watch(fd, wd)

def last_os_error(path):
    code = ctypes.get_errno()
    return OSError(code, os.strerror(code), path)

loaded_libc = None
def get_libc():
    global loaded_libc
    if loaded_libc is None:
        loaded_libc = Libc()
    return loaded_libc

from setuptools import setup, find_packages
import pkgconfig
import shutil

# Without libkdumpfile we can still install the pure-Python parts;
# kdumpfile.native then fails to import, and Kdumpfile needs an explicit engine.
if shutil.which("pkg-config") and pkgconfig.exists('libkdumpfile'):
    cffi_modules = ["ffibuilder.py:ffibuilder"]
else:
    cffi_modules = []

setup(name='kdumpfile',
      version='0.1.0',
      description='Python interface to libkdumpfile, for reading kernel crash dumps',
      classifiers=[
          "Programming Language :: Python :: 3",
          "License :: OSI Approved :: MIT License",
          "Operating System :: POSIX :: Linux",
      ],
      keywords='linux kdump crash dump',
      license='MIT',
      python_requires='>=3.7',
      setup_requires=['cffi>=1.12', 'pkgconfig'],
      install_requires=['cffi>=1.12'],
      cffi_modules=cffi_modules,
      packages=find_packages(),
      include_package_data=True,
)

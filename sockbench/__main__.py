import sys

from sockbench.run_benchmark import main

sys.exit(main())

# Copyright 2020- The Blackjax Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Progress bar for the tempering schedule.

The number of TMCMC iterations is not known in advance, so the bar tracks
the tempering parameter instead: it is full when the parameter reaches 1.
"""
from fastprogress.fastprogress import progress_bar


def tempering_progress_bar(resolution: int = 100):
    "Progress bar over the tempering parameter, in `resolution` increments"
    bar = progress_bar(range(resolution))
    bar.update(0)

    def update(tempering_param: float, comment: str = ""):
        if comment:
            bar.comment = comment
        bar.update(min(int(tempering_param * resolution), resolution))

    def close():
        bar.on_iter_end()

    return update, close
